import pytest

from conftest import JWT_SECRET, make_token
from storefront.auth import resolve_user
from storefront.errors import Unauthorized


@pytest.fixture
def store(memory_store):
    memory_store._records("users")["user1"] = {"id": "user1", "email": "ada@example.com"}
    return memory_store


def test_plain_and_bearer_tokens(store):
    token = make_token("user1")

    assert resolve_user(token, store, JWT_SECRET)["email"] == "ada@example.com"
    assert resolve_user(f"Bearer {token}", store, JWT_SECRET)["id"] == "user1"


@pytest.mark.parametrize("authorization", [None, "", "not-a-jwt", make_token("user1", secret="other")])
def test_bad_tokens(store, authorization):
    with pytest.raises(Unauthorized):
        resolve_user(authorization, store, JWT_SECRET)


def test_unknown_user(store):
    with pytest.raises(Unauthorized):
        resolve_user(make_token("ghost"), store, JWT_SECRET)


def test_missing_secret(store):
    with pytest.raises(Unauthorized):
        resolve_user(make_token("user1"), store, "")
