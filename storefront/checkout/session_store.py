"""
Stockage de session du tunnel (équivalent serveur du localStorage du navigateur).

- SessionStore: get/set/remove sur une zone clé/valeur durable, propre à l'origine.
  Les écritures vont dans les données serveur de la session (storefront.infra.session_backend);
  les lectures retombent sur le cookie signé, où l'écran de connexion pose identité et token.
- CheckoutContext: contexte typé du paiement, persisté sous la clé "checkout".
  Créé à l'entrée de la page paiement, supprimé à la confirmation ou à l'abandon.
"""
import json
import logging
from typing import Any, Dict, Mapping, MutableMapping, Optional

from fastapi import Request
from pydantic import BaseModel, Field, ValidationError

from storefront.infra.session_backend import SERVER_SESSION_SCOPE_KEY
from .models import CheckoutSummary, DeliveryDetails, PaymentMethod

logger = logging.getLogger(__name__)

# Clés historiques de la boutique (écrites par l'écran de connexion / livraison)
IDENTITY_KEY = "userEmail"
ACCESS_TOKEN_KEY = "accessToken"
DELIVERY_KEY = "deliveryDetails"
INVOICE_KEY = "invoice"
CHECKOUT_KEY = "checkout"

_MISSING = object()


class SessionStore:
    def __init__(
        self,
        backing: Optional[MutableMapping[str, Any]] = None,
        *,
        fallback: Optional[Mapping[str, Any]] = None,
    ):
        self._data: MutableMapping[str, Any] = backing if backing is not None else {}
        self._fallback: Mapping[str, Any] = fallback if fallback is not None else {}

    def get(self, key: str, default: Any = None) -> Any:
        if key in self._data:
            return self._data[key]
        return self._fallback.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data or key in self._fallback

    def get_json(self, key: str, default: Any = None) -> Any:
        """Lit une valeur sérialisée en JSON; retourne default si absente ou illisible."""
        raw = self.get(key, _MISSING)
        if raw is _MISSING or raw is None:
            return default
        if not isinstance(raw, str):
            return raw
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("session_store.get_json invalid json key=%s", key)
            return default

    def set_json(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)


def get_session_store(request: Request) -> SessionStore:
    """Dépendance FastAPI: données serveur de la session, cookie signé en lecture seule."""
    backing = request.scope.get(SERVER_SESSION_SCOPE_KEY)
    assert backing is not None, "ServerSessionMiddleware must be installed to access the session store"
    return SessionStore(backing, fallback=request.session)


# --- Lecture des données posées par les étapes amont ---

def read_identity(store: SessionStore) -> Optional[str]:
    identity = store.get(IDENTITY_KEY)
    return str(identity) if identity else None

def read_access_token(store: SessionStore) -> Optional[str]:
    return store.get(ACCESS_TOKEN_KEY) or None

def read_delivery(store: SessionStore) -> Optional[DeliveryDetails]:
    data = store.get_json(DELIVERY_KEY)
    if not data:
        return None
    try:
        return DeliveryDetails.model_validate(data)
    except ValidationError:
        logger.warning("session_store.read_delivery invalid delivery details")
        return None

def write_delivery(store: SessionStore, delivery: DeliveryDetails) -> None:
    store.set_json(DELIVERY_KEY, delivery.to_wire())

def read_invoice(store: SessionStore) -> Optional[Dict[str, Any]]:
    return store.get_json(INVOICE_KEY)

def write_invoice(store: SessionStore, invoice: Dict[str, Any]) -> None:
    store.set_json(INVOICE_KEY, invoice)


# --- Contexte typé du paiement ---

class CheckoutContext(BaseModel):
    identity: str
    delivery: DeliveryDetails
    summary: Optional[CheckoutSummary] = None
    discount: float = 0.0
    coupon_code: Optional[str] = None
    method: PaymentMethod = PaymentMethod.CASH_ON_DELIVERY
    gateway_key: str = ""
    payment_state: Dict[str, Any] = Field(default_factory=lambda: {"status": "idle"})

    @property
    def gateway_enabled(self) -> bool:
        return bool(self.gateway_key)


def load_context(store: SessionStore) -> Optional[CheckoutContext]:
    data = store.get(CHECKOUT_KEY)
    if not data:
        return None
    try:
        return CheckoutContext.model_validate(data)
    except ValidationError:
        logger.warning("session_store.load_context corrupted context, dropping it")
        store.remove(CHECKOUT_KEY)
        return None

def save_context(store: SessionStore, context: CheckoutContext) -> None:
    store.set(CHECKOUT_KEY, context.model_dump(mode="json"))

def clear_context(store: SessionStore) -> None:
    store.remove(CHECKOUT_KEY)
