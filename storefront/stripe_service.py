import json
import logging
from typing import Any, Dict, List, Mapping, Optional

import httpx
import stripe

from storefront.config import get_settings
from storefront.errors import InvalidArgument, InvalidSignature, UpstreamFailure
from storefront.forms import encode_form

logger = logging.getLogger(__name__)

STRIPE_API_BASE = "https://api.stripe.com/v1"


def construct_event(payload: bytes, sig_header: Optional[str], secret: str, tolerance: int = 300) -> Dict[str, Any]:
    """Verify a webhook delivery and return its parsed event envelope.

    The HMAC is computed over ``"{t}.{payload}"`` exactly as received, so the
    body must not be re-serialized before this call. A missing secret or
    header rejects the delivery.
    """
    if not secret:
        logger.error("STRIPE_WEBHOOK_SECRET is not configured, rejecting webhook")
        raise InvalidSignature()
    if not sig_header:
        raise InvalidSignature()

    if hasattr(payload, "decode"):
        try:
            payload = payload.decode("utf-8")
        except UnicodeDecodeError:
            raise InvalidSignature()

    try:
        stripe.WebhookSignature.verify_header(payload, sig_header, secret, tolerance or None)
    except stripe.SignatureVerificationError as exc:
        logger.warning("Webhook signature verification failed: %s", exc)
        raise InvalidSignature()

    try:
        event = json.loads(payload)
    except ValueError:
        raise InvalidArgument("Invalid payload")
    if not isinstance(event, dict):
        raise InvalidArgument("Invalid payload")
    return event


class StripeClient:
    """Thin bearer-authenticated client for the Stripe REST endpoints we call.

    Requests go through httpx rather than the stripe SDK: bodies are encoded
    with ``encode_form`` and every non-200, timeout or malformed reply surfaces
    as ``UpstreamFailure`` so callers such as order reconciliation can degrade
    instead of aborting.
    """

    line_items_page_size = 100

    def __init__(self, api_key: str, timeout: float = 10.0, http_client: httpx.Client = None):
        self.api_key = api_key
        self.http = http_client or httpx.Client(base_url=STRIPE_API_BASE, timeout=timeout)

    def close(self):
        self.http.close()

    def _request(self, method: str, path: str, params: Mapping[str, Any] = None, query: Mapping[str, Any] = None) -> Dict[str, Any]:
        if not self.api_key:
            raise UpstreamFailure("Stripe API key is not configured")

        headers = {"Authorization": f"Bearer {self.api_key}", "Accept": "application/json"}
        content = None
        if params is not None:
            headers["Content-Type"] = "application/x-www-form-urlencoded"
            content = encode_form(params)

        try:
            response = self.http.request(method, path, content=content, params=query, headers=headers)
        except httpx.HTTPError as exc:
            raise UpstreamFailure(f"Stripe {method} {path} failed: {exc}") from exc

        if response.status_code != 200:
            logger.error("Stripe %s %s returned %s: %s", method, path, response.status_code, response.text)
            raise UpstreamFailure(f"Stripe {method} {path} returned {response.status_code}")

        try:
            body = response.json()
        except ValueError as exc:
            raise UpstreamFailure(f"Stripe {method} {path} returned a malformed body") from exc
        if not isinstance(body, dict):
            raise UpstreamFailure(f"Stripe {method} {path} returned a malformed body")
        return body

    def create_customer(self, email: str, name: str, user_id: str) -> Dict[str, Any]:
        customer = self._request("POST", "/customers", {
            "email": email,
            "name": name,
            "metadata": {"user_id": user_id},
        })
        if not customer.get("id"):
            raise UpstreamFailure("Stripe customer response has no id")
        return customer

    def create_checkout_session(self, params: Mapping[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/checkout/sessions", params)

    def list_line_items(self, session_id: str) -> List[Dict[str, Any]]:
        """Return every line item of a checkout session, following ``has_more``."""
        items = []
        query = {"limit": self.line_items_page_size}
        while True:
            body = self._request("GET", f"/checkout/sessions/{session_id}/line_items", query=query)
            page = body.get("data")
            if not isinstance(page, list):
                raise UpstreamFailure("Stripe line items response has no data list")
            items.extend(page)
            if not body.get("has_more") or not page:
                return items
            last = page[-1]
            if not isinstance(last, dict) or not last.get("id"):
                raise UpstreamFailure("Stripe line items page has no cursor")
            query = {"limit": self.line_items_page_size, "starting_after": last["id"]}

    def create_portal_session(self, customer_id: str, return_url: str = None) -> Dict[str, Any]:
        return self._request("POST", "/billing_portal/sessions", {
            "customer": customer_id,
            "return_url": return_url,
        })


def get_stripe_client():
    settings = get_settings()
    client = StripeClient(settings.stripe_api_key, timeout=settings.stripe_timeout)
    try:
        yield client
    finally:
        client.close()
