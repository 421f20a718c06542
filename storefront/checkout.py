import logging

from sqlalchemy.exc import SQLAlchemyError

from storefront.config import Settings
from storefront.errors import InvalidArgument, NotFound, StorefrontError, UpstreamFailure
from storefront.store import RecordStore
from storefront.stripe_service import StripeClient

logger = logging.getLogger(__name__)

PRICE_TYPE_MODES = {
    "recurring": "subscription",
    "one_time": "payment",
}


def resolve_mode(price_type: str) -> str:
    if not price_type:
        raise InvalidArgument("Missing price type")
    try:
        return PRICE_TYPE_MODES[price_type]
    except KeyError:
        raise InvalidArgument(f"Unsupported price type: {price_type}")


def find_or_create_customer(store: RecordStore, stripe_client: StripeClient, user: dict) -> str:
    """Return the Stripe customer id for ``user``, creating it on first checkout."""
    existing = store.find_by_filter("customer", user_id=user["id"])
    if existing:
        return existing[0]["stripe_customer_id"]

    try:
        remote = stripe_client.create_customer(user.get("email"), user.get("display_name"), user["id"])
        customer_id = remote["id"]

        # A webhook may have created the row between our lookup and now
        local = store.find_by_field("customer", "stripe_customer_id", customer_id)
        if local is None:
            store.create("customer", {"stripe_customer_id": customer_id, "user_id": user["id"]})
        else:
            store.update("customer", local["id"], {"user_id": user["id"]})
    except StorefrontError as exc:
        logger.error("Unable to create customer for user %s: %s", user["id"], exc)
        raise UpstreamFailure("Unable to create or use customer")
    except SQLAlchemyError:
        logger.exception("Unable to save customer for user %s", user["id"])
        raise UpstreamFailure("Unable to create or use customer")

    logger.info("Created Stripe customer %s for user %s", customer_id, user["id"])
    return customer_id


def build_session_params(customer_id: str, price_id: str, quantity: int, mode: str, settings: Settings) -> dict:
    return {
        "customer": customer_id,
        "line_items": [{"price": price_id, "quantity": quantity}],
        "billing_address_collection": "required",
        "allow_promotion_codes": True,
        "customer_update": {"address": "auto"},
        "success_url": settings.success_url,
        "cancel_url": settings.cancel_url,
        "mode": mode,
    }


def create_checkout_session(store, stripe_client, settings, user, price_id, price_type, quantity=1) -> dict:
    mode = resolve_mode(price_type)
    customer_id = find_or_create_customer(store, stripe_client, user)
    params = build_session_params(customer_id, price_id, quantity, mode, settings)

    try:
        return stripe_client.create_checkout_session(params)
    except UpstreamFailure as exc:
        logger.error("Error creating checkout for user %s: %s", user["id"], exc)
        raise StorefrontError("Failed to create checkout")


def create_portal_link(store, stripe_client, settings, user) -> dict:
    customer = store.find_by_field("customer", "user_id", user["id"])
    if customer is None:
        raise NotFound("Customer not found")

    try:
        session = stripe_client.create_portal_session(customer["stripe_customer_id"], settings.portal_return_url)
    except UpstreamFailure as exc:
        logger.error("Error retrieving customer portal link for user %s: %s", user["id"], exc)
        raise StorefrontError("Failed to retrieve customer portal link")

    return {"customer_portal_link": session.get("url")}
