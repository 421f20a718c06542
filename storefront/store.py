import logging
from typing import Any, Dict, List, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.database import SessionLocal
from storefront.errors import NotFound
from storefront.models import Category, Customer, Order, Product, User

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


class RecordStore(Protocol):
    """Collection-oriented access to the storefront's records.

    Lookups return ``None`` (or an empty list) when nothing matches instead of
    raising, so callers branch on presence. Each write is persisted on its own;
    there are no transactions spanning several records.
    """

    def find_by_field(self, collection: str, field: str, value: Any) -> Optional[Record]:
        ...

    def find_by_filter(self, collection: str, **criteria: Any) -> List[Record]:
        ...

    def find_by_id(self, collection: str, record_id: str) -> Optional[Record]:
        ...

    def create(self, collection: str, data: Record) -> Record:
        ...

    def update(self, collection: str, record_id: str, data: Record) -> Record:
        ...


class SqlRecordStore:
    models = {
        "users": User,
        "categories": Category,
        "products": Product,
        "customer": Customer,
        "orders": Order,
    }

    def __init__(self, db: Session):
        self.db = db

    def _model(self, collection: str):
        try:
            return self.models[collection]
        except KeyError:
            raise KeyError(f"Unknown collection: {collection}")

    def _check_fields(self, model, fields):
        columns = model.__table__.columns.keys()
        unknown = [name for name in fields if name not in columns]
        if unknown:
            raise KeyError(f"Unknown field(s) for {model.__tablename__}: {', '.join(unknown)}")

    def find_by_field(self, collection, field, value):
        model = self._model(collection)
        self._check_fields(model, [field])
        row = self.db.query(model).filter_by(**{field: value}).first()
        return row.to_dict() if row else None

    def find_by_filter(self, collection, **criteria):
        model = self._model(collection)
        self._check_fields(model, criteria)
        return [row.to_dict() for row in self.db.query(model).filter_by(**criteria).all()]

    def find_by_id(self, collection, record_id):
        row = self.db.get(self._model(collection), record_id)
        return row.to_dict() if row else None

    def create(self, collection, data):
        model = self._model(collection)
        self._check_fields(model, data)
        row = model(**data)
        self.db.add(row)
        self._commit()
        self.db.refresh(row)
        return row.to_dict()

    def update(self, collection, record_id, data):
        model = self._model(collection)
        self._check_fields(model, data)
        row = self.db.get(model, record_id)
        if row is None:
            raise NotFound(f"{collection} record {record_id} not found")
        for key, value in data.items():
            setattr(row, key, value)
        self._commit()
        self.db.refresh(row)
        return row.to_dict()

    def _commit(self):
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Record store commit failed")
            raise


def get_store():
    db = SessionLocal()
    try:
        yield SqlRecordStore(db)
    finally:
        db.close()
