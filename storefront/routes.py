from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from storefront.auth import get_current_user
from storefront.checkout import create_checkout_session, create_portal_link
from storefront.config import get_settings
from storefront.store import get_store
from storefront.stripe_service import get_stripe_client

router = APIRouter()


class PriceRef(BaseModel):
    id: str
    type: Optional[str] = None


class CheckoutRequest(BaseModel):
    price: PriceRef
    quantity: int = Field(default=1, ge=1)


@router.post("/create-checkout-session")
def create_checkout_session_api(
    request: CheckoutRequest,
    user=Depends(get_current_user),
    store=Depends(get_store),
    stripe_client=Depends(get_stripe_client),
):
    return create_checkout_session(
        store,
        stripe_client,
        get_settings(),
        user,
        price_id=request.price.id,
        price_type=request.price.type,
        quantity=request.quantity,
    )


@router.get("/create-portal-link")
def create_portal_link_api(
    user=Depends(get_current_user),
    store=Depends(get_store),
    stripe_client=Depends(get_stripe_client),
):
    return create_portal_link(store, stripe_client, get_settings(), user)
