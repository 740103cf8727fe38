"""
Accès à l'API boutique pour la feature 'checkout'.

Chaque fonction retourne (status_code, body_json) ou le body directement;
les erreurs réseau et JSON illisibles deviennent TransportError.
"""
import logging
from typing import Any, Dict, Optional, Tuple
from urllib.parse import quote

import httpx

import storefront.infra.api_client as api_client
from .errors import TransportError

logger = logging.getLogger(__name__)

SUMMARY_PATH = "/api/checkout/{identity}"
COUPON_PATH = "/api/coupons/apply"
GATEWAY_CONFIG_PATH = "/api/payments/razorpay/config"
GATEWAY_ORDER_PATH = "/api/payments/razorpay/create-order"
CONFIRM_PATH = "/api/checkout/confirm-payment"


def _json(response: httpx.Response) -> Dict[str, Any]:
    if not response.content:
        return {}
    try:
        data = response.json()
    except ValueError as e:
        raise TransportError(f"Invalid JSON from shop API ({response.status_code})") from e
    return data if isinstance(data, dict) else {"data": data}

async def _request(method: str, path: str, *, token: Optional[str] = None, **kwargs) -> Tuple[int, Dict[str, Any]]:
    try:
        response = await api_client.get_api_client().request(
            method, path, headers=api_client.auth_headers(token), **kwargs
        )
    except httpx.HTTPError as e:
        logger.warning("checkout.repository %s %s failed: %s", method, path, e)
        raise TransportError(str(e) or type(e).__name__) from e
    return response.status_code, _json(response)


async def fetch_checkout_summary(identity: str, *, token: Optional[str] = None) -> Dict[str, Any]:
    """
    GET /api/checkout/{identity} -> {items: [...], totalAmount}
    - Un statut non-200 est traité comme un échec de transport (résumé indisponible).
    """
    path = SUMMARY_PATH.format(identity=quote(identity, safe="@"))
    status, data = await _request("GET", path, token=token)
    if status != 200:
        raise TransportError(f"Summary request failed ({status})")
    return data

async def apply_coupon(code: str, *, token: Optional[str] = None) -> Tuple[int, Dict[str, Any]]:
    """GET /api/coupons/apply?code= -> {discountAmount} (200) ou {error} (non-200)."""
    return await _request("GET", COUPON_PATH, params={"code": code}, token=token)

async def fetch_gateway_config(*, token: Optional[str] = None) -> Dict[str, Any]:
    """GET config passerelle -> {keyId}; vide si la passerelle est désactivée."""
    status, data = await _request("GET", GATEWAY_CONFIG_PATH, token=token)
    if status != 200:
        return {}
    return data

async def create_gateway_order(amount: float, currency: str, *, token: Optional[str] = None) -> Tuple[int, Dict[str, Any]]:
    """POST création de commande fournisseur {amount, currency} -> {orderId, amount, currency} ou {error}."""
    return await _request("POST", GATEWAY_ORDER_PATH, json={"amount": amount, "currency": currency}, token=token)

async def confirm_payment(payload: Dict[str, Any], *, token: Optional[str] = None) -> Tuple[int, Dict[str, Any]]:
    """
    POST /api/checkout/confirm-payment {userId, delivery, discount, paymentMethod, transactionId}
    -> facture (200) ou {message} (non-200). Seul l'orchestrateur appelle cette fonction.
    """
    return await _request("POST", CONFIRM_PATH, json=payload, token=token)
