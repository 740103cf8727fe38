"""
Passerelle hébergée (widget Razorpay ouvert dans le navigateur).
- fetch_gateway_key: clé publique lue au chargement de la page ("" si indisponible)
- widget_options: options passées au widget (montant en sous-unités)
- parse_gateway_callback: normalise le retour du widget (succès ou payment.failed)
"""
import logging
from typing import Any, Dict, Optional

from storefront.config import SHOP_NAME
from . import repository
from .errors import TransportError
from .models import GatewayOrder, GatewayResult

logger = logging.getLogger(__name__)


async def fetch_gateway_key(*, token: Optional[str] = None) -> str:
    try:
        config = await repository.fetch_gateway_config(token=token)
    except TransportError:
        logger.warning("checkout.gateway config unavailable, gateway disabled")
        return ""
    return str(config.get("keyId") or "")

def widget_options(key: str, order: GatewayOrder) -> Dict[str, Any]:
    return {
        "key": key,
        "amount": int(round(order.amount * 100)),
        "currency": order.currency,
        "name": SHOP_NAME,
        "description": "Order Payment",
        "order_id": order.order_id,
        # Un échec dans le widget clôt la tentative: pas de second essai dans la même fenêtre
        "retry": {"enabled": False},
    }

def parse_gateway_callback(payload: Dict[str, Any]) -> GatewayResult:
    payload = payload or {}
    payment_id = str(payload.get("razorpay_payment_id") or "").strip()
    if payment_id and not payload.get("error"):
        return GatewayResult(
            success=True,
            transaction_id=payment_id,
            order_id=payload.get("razorpay_order_id"),
            signature=payload.get("razorpay_signature"),
        )
    error = payload.get("error")
    if isinstance(error, dict):
        error = error.get("description") or error.get("reason")
    return GatewayResult(success=False, order_id=payload.get("razorpay_order_id"), error=str(error) if error else None)
