import enum
import uuid
from sqlalchemy import Column, String, Integer, Float, Boolean, DateTime, ForeignKey, JSON, func
from storefront.database import Base


def new_id():
    # PocketBase-style 15 character record id
    return uuid.uuid4().hex[:15]


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    CANCELLED = "cancelled"
    SHIPPED = "shipped"
    IN_PROCESS = "in-process"


class RecordMixin:
    def to_dict(self):
        return {column.name: getattr(self, column.name) for column in self.__table__.columns}


class User(RecordMixin, Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=new_id)
    email = Column(String, unique=True, index=True)
    display_name = Column(String)
    is_admin = Column(Boolean, default=False)


class Category(RecordMixin, Base):
    __tablename__ = "categories"

    id = Column(String, primary_key=True, default=new_id)
    name = Column(String, unique=True)


class Product(RecordMixin, Base):
    __tablename__ = "products"

    id = Column(String, primary_key=True, default=new_id)
    stripe_product_id = Column(String, unique=True, index=True, nullable=True)
    name = Column(String, default="")
    slug = Column(String, nullable=True)
    description = Column(String, default="")
    price = Column(Float, default=0)                       # maintained outside the webhook path
    stock = Column(Integer, default=0)
    is_available = Column(Boolean, default=False)
    is_featured = Column(Boolean, default=False)
    category = Column(String, ForeignKey("categories.id"), nullable=True)


class Customer(RecordMixin, Base):
    __tablename__ = "customer"

    id = Column(String, primary_key=True, default=new_id)
    stripe_customer_id = Column(String, unique=True, index=True, nullable=False)
    user_id = Column(String, ForeignKey("users.id"), unique=True, nullable=False)


class Order(RecordMixin, Base):
    __tablename__ = "orders"

    id = Column(String, primary_key=True, default=new_id)
    user = Column(String, ForeignKey("users.id"), index=True)
    status = Column(String, default=OrderStatus.PENDING.value)   # pending | cancelled | shipped | in-process
    total_amount = Column(Float)
    shipping_address = Column(JSON, nullable=True)
    items = Column(JSON, nullable=True)
    created = Column(DateTime, server_default=func.now())
