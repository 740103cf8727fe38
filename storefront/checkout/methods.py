"""Sélection du moyen de paiement (bascule pure, sans effet sur remise ni résumé)."""
from typing import Any, Dict, List

from .errors import GatewayUnavailable
from .models import METHOD_HINTS, METHOD_LABELS, PaymentMethod
from .session_store import CheckoutContext


def available_methods(context: CheckoutContext) -> List[Dict[str, Any]]:
    """Options proposées à l'écran; la passerelle n'apparaît que si sa clé publique est connue."""
    options = []
    for method in PaymentMethod:
        if method is PaymentMethod.HOSTED_GATEWAY and not context.gateway_enabled:
            continue
        options.append({
            "value": method.value,
            "label": METHOD_LABELS[method],
            "hint": METHOD_HINTS[method],
            "selected": method is context.method,
        })
    return options

def select_method(context: CheckoutContext, method: Any) -> PaymentMethod:
    chosen = PaymentMethod.parse(method)
    if chosen is PaymentMethod.HOSTED_GATEWAY and not context.gateway_enabled:
        raise GatewayUnavailable()
    context.method = chosen
    return chosen
