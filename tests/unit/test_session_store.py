from storefront.checkout.models import PaymentMethod
from storefront.checkout.session_store import (
    CHECKOUT_KEY,
    DELIVERY_KEY,
    SessionStore,
    clear_context,
    load_context,
    read_delivery,
    read_identity,
    read_invoice,
    save_context,
    write_invoice,
)


def test_get_set_remove():
    store = SessionStore()
    assert store.get("missing") is None
    store.set("a", "1")
    assert "a" in store
    assert store.get("a") == "1"
    store.remove("a")
    store.remove("a")
    assert "a" not in store


def test_get_json_returns_default_on_garbage():
    store = SessionStore({"k": "{not json"})
    assert store.get_json("k", {}) == {}
    store.set_json("k", {"x": 1})
    assert store.get_json("k") == {"x": 1}


def test_identity_and_invalid_delivery(checkout_store):
    assert read_identity(checkout_store) == "jane@example.com"
    assert read_delivery(checkout_store).city == "Lyon"
    checkout_store.set(DELIVERY_KEY, '{"fullName": "Jane"}')
    assert read_delivery(checkout_store) is None


def test_invoice_roundtrip(store):
    assert read_invoice(store) is None
    write_invoice(store, {"orderId": "ORD-1"})
    assert read_invoice(store) == {"orderId": "ORD-1"}


def test_context_persistence(store, make_context):
    context = make_context(discount=20, coupon_code="SAVE20", method=PaymentMethod.CARD)
    save_context(store, context)
    loaded = load_context(store)
    assert loaded.discount == 20
    assert loaded.method is PaymentMethod.CARD
    assert loaded.summary.total_amount == 100
    assert loaded.payment_state == {"status": "idle"}
    clear_context(store)
    assert load_context(store) is None


def test_corrupted_context_is_dropped(store):
    store.set(CHECKOUT_KEY, {"identity": "x"})
    assert load_context(store) is None
    assert CHECKOUT_KEY not in store


def test_cookie_fallback_is_read_only():
    cookie = {"userEmail": "jane@example.com", "accessToken": "tok"}
    data = {}
    store = SessionStore(data, fallback=cookie)
    assert read_identity(store) == "jane@example.com"
    assert "accessToken" in store

    store.set("deliveryDetails", "{}")
    store.remove("userEmail")
    assert data == {"deliveryDetails": "{}"}
    assert cookie == {"userEmail": "jane@example.com", "accessToken": "tok"}
    assert store.get("userEmail") == "jane@example.com"


def test_server_data_shadows_cookie():
    store = SessionStore({"userEmail": "server@example.com"}, fallback={"userEmail": "cookie@example.com"})
    assert read_identity(store) == "server@example.com"
