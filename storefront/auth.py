from fastapi import Depends, Header
from jose import JWTError, jwt

from storefront.config import get_settings
from storefront.errors import Unauthorized
from storefront.store import RecordStore, get_store


def resolve_user(authorization: str, store: RecordStore, secret: str) -> dict:
    """Map a caller token to its ``users`` record or raise Unauthorized."""
    if not authorization or not secret:
        raise Unauthorized()

    token = authorization.strip()
    if token.lower().startswith("bearer "):
        token = token[7:].strip()

    try:
        claims = jwt.decode(token, secret, algorithms=["HS256"])
    except JWTError:
        raise Unauthorized()

    user_id = claims.get("sub") or claims.get("id")
    if not user_id:
        raise Unauthorized()

    user = store.find_by_id("users", str(user_id))
    if user is None:
        raise Unauthorized()
    return user


def get_current_user(
    authorization: str = Header(None),
    store: RecordStore = Depends(get_store),
):
    return resolve_user(authorization, store, get_settings().jwt_secret)
