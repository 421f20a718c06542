"""Reconcile verified Stripe webhook events against the record store.

Deliveries are handled statelessly and in whatever order Stripe sends them.
Two concurrent events for the same ``stripe_product_id`` are not coordinated
here; the store's unique index and last-write-wins updates decide the outcome.
"""
import logging
import re

from storefront.errors import NotFound, UpstreamFailure
from storefront.models import OrderStatus
from storefront.store import RecordStore
from storefront.stripe_service import StripeClient

logger = logging.getLogger(__name__)


def slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def reconcile_product(store: RecordStore, product: dict, stripe_client: StripeClient = None) -> dict:
    """Create or update the local product mirrored from a Stripe product.

    Price and stock are left alone: the event does not carry them in a usable
    shape and they are managed from the admin side.
    """
    existing = store.find_by_field("products", "stripe_product_id", product["id"])
    metadata = product.get("metadata") or {}

    data = {
        "name": product.get("name") or "",
        "description": product.get("description") or "",
        "is_available": bool(product.get("active", False)),
    }
    if "featured" in metadata:
        data["is_featured"] = str(metadata["featured"]).lower() == "true"

    if (existing is None or not existing.get("slug")) and data["name"]:
        data["slug"] = slugify(data["name"])

    category_id = metadata.get("category_id")
    if category_id:
        if store.find_by_id("categories", category_id) is not None:
            data["category"] = category_id
        else:
            logger.warning("Category %s not found for product %s", category_id, product["id"])

    if existing is None:
        data["stripe_product_id"] = product["id"]
        record = store.create("products", data)
        logger.info("Product %s created from %s", record["id"], product["id"])
    else:
        record = store.update("products", existing["id"], data)
        logger.info("Product %s updated from %s", record["id"], product["id"])
    return record


def reconcile_order(store: RecordStore, session: dict, stripe_client: StripeClient) -> dict:
    customer = store.find_by_field("customer", "stripe_customer_id", session.get("customer"))
    if customer is None:
        raise NotFound(f"Customer {session.get('customer')} not found")

    customer_details = session.get("customer_details") or {}
    data = {
        "user": customer["user_id"],
        "status": OrderStatus.PENDING.value,
        "total_amount": (session.get("amount_total") or 0) / 100,
        "shipping_address": customer_details.get("address"),
    }

    # An order without items is still recorded and can be fixed up by hand
    try:
        data["items"] = stripe_client.list_line_items(session["id"])
    except UpstreamFailure as exc:
        logger.error("Failed to retrieve line items for session %s: %s", session["id"], exc)

    record = store.create("orders", data)
    logger.info("Order %s created from checkout session %s", record["id"], session["id"])
    return record


def reconcile_checkout_session(store: RecordStore, session: dict, stripe_client: StripeClient):
    if session.get("mode") != "payment":
        logger.info("Ignoring %s checkout session %s", session.get("mode"), session.get("id"))
        return None
    return reconcile_order(store, session, stripe_client)


EVENT_HANDLERS = {
    "product.created": reconcile_product,
    "product.updated": reconcile_product,
    "checkout.session.completed": reconcile_checkout_session,
}


def handle_event(event: dict, store: RecordStore, stripe_client: StripeClient):
    event_type = event.get("type")
    handler = EVENT_HANDLERS.get(event_type)
    if handler is None:
        logger.info("Unhandled event type: %s", event_type)
        return None

    obj = (event.get("data") or {}).get("object") or {}
    return handler(store, obj, stripe_client)
