import os

# Pas de Redis pendant les tests: le lifespan désactive le rate limiting
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")
# Données de session en mémoire (pas de Redis)
os.environ.setdefault("SESSION_BACKEND", "memory")

import json
from base64 import b64encode
import pytest
from typing import Any, Dict, Generator, List, Optional, Tuple
import httpx
from fastapi.testclient import TestClient
from itsdangerous import TimestampSigner

from storefront.app import app as fastapi_app
from storefront.config import SESSION_COOKIE_NAME, SESSION_SECRET_KEY
from storefront.checkout import orchestrator
from storefront.checkout.models import DeliveryDetails
from storefront.checkout.session_store import (
    ACCESS_TOKEN_KEY,
    IDENTITY_KEY,
    CheckoutContext,
    SessionStore,
    get_session_store,
    write_delivery,
)
from storefront.utils.csrf import CSRF_COOKIE_NAME, CSRF_HEADER_NAME

USER_EMAIL = "jane@example.com"
DELIVERY = {
    "fullName": "Jane Doe",
    "address": "12 rue des Lilas",
    "city": "Lyon",
    "postalCode": "69001",
    "country": "FR",
    "phone": "+33600000000",
}
SUMMARY = {
    "items": [
        {"productId": 1, "productName": "Pearl Drop Earrings", "quantity": 2, "itemTotal": 60},
        {"productId": "2", "productName": "Silver Hoops", "quantity": 1, "itemTotal": 40},
    ],
    "totalAmount": 100,
}
INVOICE = {"orderId": "ORD-1", "totalAmount": 80, "paymentMethod": "COD"}


# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "/tests/unit/" in nodeid or nodeid.startswith("tests/unit/") or nodeid.startswith("unit/"):
            item.add_marker(pytest.mark.unit)
        elif "/tests/integration/" in nodeid or nodeid.startswith("tests/integration/") or nodeid.startswith("integration/"):
            item.add_marker(pytest.mark.integration)
        elif "/tests/functional/" in nodeid or nodeid.startswith("tests/functional/") or nodeid.startswith("functional/"):
            item.add_marker(pytest.mark.functional)


class FakeShopAPI:
    """
    API boutique simulée (httpx.MockTransport).
    Chaque requête est enregistrée dans `calls` (méthode, chemin, corps JSON).
    """

    def __init__(self):
        self.summary: Dict[str, Any] = json.loads(json.dumps(SUMMARY))
        self.summary_status = 200
        self.gateway_key = ""
        self.coupons: Dict[str, Any] = {"SAVE20": 20, "SAVE5": 5}
        self.order_status = 200
        self.order_body: Optional[Dict[str, Any]] = None
        self.confirm_status = 200
        self.confirm_body: Dict[str, Any] = dict(INVOICE)
        self.down_paths: set = set()
        self.calls: List[Tuple[str, str, Any]] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        body = json.loads(request.content) if request.content else None
        self.calls.append((request.method, path, body))
        if path in self.down_paths:
            raise httpx.ConnectError("shop api down", request=request)

        if path.startswith("/api/checkout/") and path != "/api/checkout/confirm-payment":
            return httpx.Response(self.summary_status, json=self.summary)
        if path == "/api/coupons/apply":
            code = request.url.params.get("code", "")
            if code in self.coupons:
                return httpx.Response(200, json={"discountAmount": self.coupons[code]})
            return httpx.Response(400, json={"error": "Invalid coupon"})
        if path == "/api/payments/razorpay/config":
            if self.gateway_key:
                return httpx.Response(200, json={"keyId": self.gateway_key})
            return httpx.Response(404, json={"error": "Razorpay not configured"})
        if path == "/api/payments/razorpay/create-order":
            data = self.order_body
            if data is None:
                data = {"orderId": "order_test_1", "amount": body["amount"], "currency": body["currency"]}
            return httpx.Response(self.order_status, json=data)
        if path == "/api/checkout/confirm-payment":
            return httpx.Response(self.confirm_status, json=self.confirm_body)
        return httpx.Response(404, json={"error": "not found"})

    def calls_to(self, path: str) -> List[Tuple[str, str, Any]]:
        return [c for c in self.calls if c[1] == path]

    @property
    def confirm_calls(self) -> List[Any]:
        return [c[2] for c in self.calls_to("/api/checkout/confirm-payment")]


@pytest.fixture()
def shop_api(monkeypatch) -> FakeShopAPI:
    fake = FakeShopAPI()
    transport = httpx.MockTransport(fake.handler)

    def _client():
        return httpx.AsyncClient(transport=transport, base_url="http://shop.test")

    monkeypatch.setattr("storefront.infra.api_client.get_api_client", _client)
    return fake


@pytest.fixture()
def store() -> SessionStore:
    return SessionStore({})


@pytest.fixture()
def checkout_store(store) -> SessionStore:
    """Session avec identité, token et adresse posés par les étapes amont."""
    store.set(IDENTITY_KEY, USER_EMAIL)
    store.set(ACCESS_TOKEN_KEY, "token-123")
    write_delivery(store, DeliveryDetails.model_validate(DELIVERY))
    return store


@pytest.fixture()
def make_context():
    from storefront.checkout.models import CheckoutSummary

    def _make(**overrides) -> CheckoutContext:
        data = {
            "identity": USER_EMAIL,
            "delivery": DeliveryDetails.model_validate(DELIVERY),
            "summary": CheckoutSummary.model_validate(SUMMARY),
        }
        data.update(overrides)
        return CheckoutContext(**data)
    return _make


@pytest.fixture(autouse=True)
def _reset_inflight():
    orchestrator._inflight.clear()
    yield
    orchestrator._inflight.clear()


@pytest.fixture(scope="session")
def app():
    return fastapi_app


@pytest.fixture()
def client(app, store, shop_api) -> Generator[TestClient, None, None]:
    """Client HTTP dont la session est le `store` du test (double-submit CSRF pré-rempli)."""
    app.dependency_overrides[get_session_store] = lambda: store
    with TestClient(app) as c:
        c.cookies.set(CSRF_COOKIE_NAME, "test-csrf-token")
        c.headers[CSRF_HEADER_NAME] = "test-csrf-token"
        yield c
    app.dependency_overrides.pop(get_session_store, None)


# Domaine que le cookiejar associe à l'hôte "testserver" du TestClient
COOKIE_DOMAIN = "testserver.local"

def signed_session_cookie(data: Dict[str, Any]) -> str:
    """Cookie de session tel que l'écran de connexion le laisse (même format que SessionMiddleware)."""
    payload = b64encode(json.dumps(data).encode("utf-8"))
    return TimestampSigner(SESSION_SECRET_KEY).sign(payload).decode("utf-8")


@pytest.fixture()
def cookie_client(app, shop_api) -> Generator[TestClient, None, None]:
    """Client sans override: vrai SessionMiddleware + données de session côté serveur."""
    app.dependency_overrides.pop(get_session_store, None)
    with TestClient(app) as c:
        c.cookies.set(
            SESSION_COOKIE_NAME,
            signed_session_cookie({IDENTITY_KEY: USER_EMAIL, ACCESS_TOKEN_KEY: "token-123"}),
            domain=COOKIE_DOMAIN,
        )
        c.cookies.set(CSRF_COOKIE_NAME, "test-csrf-token", domain=COOKIE_DOMAIN)
        c.headers[CSRF_HEADER_NAME] = "test-csrf-token"
        yield c
