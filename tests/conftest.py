import hashlib
import hmac
import itertools
import os
import time

import httpx
import pytest
from jose import jwt

WEBHOOK_SECRET = "whsec_test_secret"
API_KEY = "sk_test_123"
JWT_SECRET = "jwt_test_secret"

os.environ["DATABASE_URL"] = "sqlite:///./test_storefront.db"
os.environ["STRIPE_WEBHOOK_SECRET"] = WEBHOOK_SECRET
os.environ["STRIPE_API_KEY"] = API_KEY
os.environ["JWT_SECRET"] = JWT_SECRET
os.environ["APP_ENV"] = "development"

from storefront.errors import NotFound  # noqa: E402
from storefront.stripe_service import STRIPE_API_BASE, StripeClient  # noqa: E402


def sign_payload(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int = None) -> str:
    timestamp = int(time.time()) if timestamp is None else timestamp
    signature = hmac.new(secret.encode(), f"{timestamp}.".encode() + payload, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def make_token(user_id: str, secret: str = JWT_SECRET) -> str:
    return jwt.encode({"sub": user_id}, secret, algorithm="HS256")


class InMemoryStore:
    def __init__(self):
        self.collections = {}
        self._ids = itertools.count(1)

    def _records(self, collection):
        return self.collections.setdefault(collection, {})

    def find_by_field(self, collection, field, value):
        for record in self._records(collection).values():
            if record.get(field) == value:
                return dict(record)
        return None

    def find_by_filter(self, collection, **criteria):
        return [
            dict(record) for record in self._records(collection).values()
            if all(record.get(key) == value for key, value in criteria.items())
        ]

    def find_by_id(self, collection, record_id):
        record = self._records(collection).get(record_id)
        return dict(record) if record else None

    def create(self, collection, data):
        record = {"id": f"rec{next(self._ids)}", **data}
        self._records(collection)[record["id"]] = record
        return dict(record)

    def update(self, collection, record_id, data):
        records = self._records(collection)
        if record_id not in records:
            raise NotFound()
        records[record_id].update(data)
        return dict(records[record_id])

    def count(self, collection):
        return len(self._records(collection))


class FakeStripeAPI:
    """MockTransport handler answering canned responses per (method, path)."""

    def __init__(self):
        self.requests = []
        self.routes = {}

    def respond(self, method, path, status=200, body=None):
        self.routes[(method, "/v1" + path)] = (status, body)

    def calls(self, method, path):
        return [r for r in self.requests if r.method == method and r.url.path == "/v1" + path]

    def __call__(self, request):
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"error": {"message": "No such route"}})
        status, body = route
        if isinstance(body, Exception):
            raise body
        if callable(body):
            return body(request)
        if isinstance(body, (bytes, str)):
            return httpx.Response(status, content=body)
        return httpx.Response(status, json=body)

    def client(self, api_key=API_KEY):
        http_client = httpx.Client(base_url=STRIPE_API_BASE, transport=httpx.MockTransport(self))
        return StripeClient(api_key, http_client=http_client)


@pytest.fixture
def memory_store():
    return InMemoryStore()


@pytest.fixture
def stripe_api():
    return FakeStripeAPI()
