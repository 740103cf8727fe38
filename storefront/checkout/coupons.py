"""
Application d'un code promo.
- Succès: remplace la remise courante (jamais de cumul).
- Échec (code refusé, réponse invalide, erreur réseau): remise remise à 0.
- Aucune application optimiste: le total ne change qu'après validation serveur.
"""
import logging
from dataclasses import dataclass
from typing import Any, Optional

from storefront.config import CURRENCY_SYMBOL
from . import repository
from .errors import InvalidCouponError, TransportError
from .models import format_amount
from .session_store import CheckoutContext

logger = logging.getLogger(__name__)

INVALID_COUPON_MESSAGE = "Invalid coupon."
COUPON_ERROR_MESSAGE = "Error applying coupon"


@dataclass(frozen=True)
class CouponResult:
    discount: float
    message: str
    message_type: str = "success"


def _parse_discount(value: Any) -> Optional[float]:
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return None
    if amount != amount or amount < 0:  # NaN ou négatif
        return None
    return round(amount, 2)

def _reset(context: CheckoutContext) -> None:
    context.discount = 0.0
    context.coupon_code = None

async def apply_coupon(context: CheckoutContext, code: str, *, token: Optional[str] = None) -> CouponResult:
    code = (code or "").strip()
    if not code:
        _reset(context)
        raise InvalidCouponError(INVALID_COUPON_MESSAGE)

    try:
        status, data = await repository.apply_coupon(code, token=token)
    except TransportError as e:
        _reset(context)
        raise InvalidCouponError(COUPON_ERROR_MESSAGE) from e

    discount = _parse_discount(data.get("discountAmount")) if status == 200 else None
    if discount is None:
        _reset(context)
        logger.info("checkout.coupon rejected code=%s status=%s", code, status)
        raise InvalidCouponError(INVALID_COUPON_MESSAGE)

    context.discount = discount
    context.coupon_code = code
    logger.info("checkout.coupon applied code=%s discount=%s user=%s", code, discount, context.identity)
    return CouponResult(discount=discount, message=f"Coupon applied: {CURRENCY_SYMBOL}{format_amount(discount)} off")
