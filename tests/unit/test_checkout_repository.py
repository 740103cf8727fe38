import httpx
import pytest

from storefront.checkout import repository
from storefront.checkout.errors import TransportError
from storefront.infra.api_client import auth_headers


def test_auth_headers():
    assert auth_headers(None) == {}
    assert auth_headers("abc") == {"Authorization": "Bearer abc"}


@pytest.mark.asyncio
async def test_invalid_json_is_transport_error(monkeypatch):
    transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"<html>oops</html>"))
    monkeypatch.setattr(
        "storefront.infra.api_client.get_api_client",
        lambda: httpx.AsyncClient(transport=transport, base_url="http://shop.test"),
    )
    with pytest.raises(TransportError):
        await repository.apply_coupon("SAVE20")


@pytest.mark.asyncio
async def test_bearer_token_is_forwarded(monkeypatch):
    seen = {}

    def handler(request):
        seen["auth"] = request.headers.get("authorization")
        return httpx.Response(200, json={"discountAmount": 5})

    transport = httpx.MockTransport(handler)
    monkeypatch.setattr(
        "storefront.infra.api_client.get_api_client",
        lambda: httpx.AsyncClient(transport=transport, base_url="http://shop.test"),
    )
    status, data = await repository.apply_coupon("SAVE5", token="tok")
    assert status == 200 and data == {"discountAmount": 5}
    assert seen["auth"] == "Bearer tok"


@pytest.mark.asyncio
async def test_gateway_order_payload(shop_api):
    status, data = await repository.create_gateway_order(80.0, "INR")
    assert status == 200
    assert data["orderId"] == "order_test_1"
    assert shop_api.calls_to("/api/payments/razorpay/create-order")[0][2] == {"amount": 80.0, "currency": "INR"}
