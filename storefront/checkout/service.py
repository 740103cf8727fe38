"""
Cas d'usage 'checkout': cycle de vie du contexte et orchestration pour les vues.

- open_checkout: entrée sur la page paiement (préconditions, config passerelle, résumé)
- get_checkout: contexte courant, ou ouverture s'il n'existe pas encore
- apply_coupon / choose_method / confirm / gateway_callback / gateway_cancel
- abandon_checkout: abandon explicite, le contexte est supprimé
Chaque cas d'usage persiste le contexte, y compris quand il lève une erreur.
"""
import logging
from typing import Any, Dict, Optional

from . import coupons
from . import gateway
from . import methods
from . import summary as summary_service
from .coupons import CouponResult
from .errors import TransportError
from .models import DeliveryDetails, PaymentMethod, final_total
from .orchestrator import Outcome, PaymentOrchestrator
from .session_store import (
    CheckoutContext,
    SessionStore,
    clear_context,
    load_context,
    read_access_token,
    save_context,
    write_delivery,
)

logger = logging.getLogger(__name__)


async def open_checkout(store: SessionStore) -> CheckoutContext:
    """
    Nouvelle étape de paiement: l'identité est vérifiée avant tout appel réseau.
    En cas d'échec du résumé, aucun contexte n'est conservé (page "résumé indisponible").
    """
    identity = summary_service.require_identity(store)
    delivery = summary_service.require_delivery(store)
    token = read_access_token(store)
    clear_context(store)

    gateway_key = await gateway.fetch_gateway_key(token=token)
    checkout_summary = await summary_service.fetch_summary(identity, token=token)

    context = CheckoutContext(
        identity=identity,
        delivery=delivery,
        summary=checkout_summary,
        gateway_key=gateway_key,
    )
    save_context(store, context)
    logger.info("checkout.open user=%s items=%s total=%s gateway=%s",
                identity, len(checkout_summary.items), checkout_summary.total_amount, bool(gateway_key))
    return context

async def get_checkout(store: SessionStore) -> CheckoutContext:
    identity = summary_service.require_identity(store)
    summary_service.require_delivery(store)
    context = load_context(store)
    if context is not None and context.identity == identity:
        return context
    return await open_checkout(store)

def view_model(context: CheckoutContext, *, message: Optional[str] = None, message_type: Optional[str] = None) -> Dict[str, Any]:
    """Données affichées par la page paiement (et renvoyées par l'API JSON)."""
    checkout_summary = context.summary
    total = checkout_summary.total_amount if checkout_summary else 0.0
    return {
        "items": [item.to_wire() for item in checkout_summary.items] if checkout_summary else [],
        "totalAmount": total,
        "discount": context.discount,
        "couponCode": context.coupon_code,
        "finalTotal": final_total(total, context.discount),
        "paymentMethod": context.method.value,
        "methods": methods.available_methods(context),
        "gatewayEnabled": context.gateway_enabled,
        "state": context.payment_state.get("status", "idle"),
        "message": message,
        "messageType": message_type,
    }


async def apply_coupon(store: SessionStore, code: str) -> CouponResult:
    context = await get_checkout(store)
    try:
        return await coupons.apply_coupon(context, code, token=read_access_token(store))
    finally:
        save_context(store, context)

async def choose_method(store: SessionStore, method: Any) -> PaymentMethod:
    context = await get_checkout(store)
    chosen = methods.select_method(context, method)
    save_context(store, context)
    return chosen


def _orchestrator(store: SessionStore, context: CheckoutContext) -> PaymentOrchestrator:
    return PaymentOrchestrator(context, store, token=read_access_token(store))

def _persist(store: SessionStore, orchestrator: PaymentOrchestrator) -> None:
    # Une fois confirmé, le contexte a été supprimé par l'orchestrateur
    if not orchestrator.finished:
        save_context(store, orchestrator.context)

async def confirm(store: SessionStore) -> Outcome:
    context = await get_checkout(store)
    if context.summary is None:
        raise TransportError(summary_service.SUMMARY_ERROR_MESSAGE)
    orchestrator = _orchestrator(store, context)
    try:
        return await orchestrator.submit()
    finally:
        _persist(store, orchestrator)

async def gateway_callback(store: SessionStore, payload: Dict[str, Any]) -> Outcome:
    context = await get_checkout(store)
    orchestrator = _orchestrator(store, context)
    try:
        return await orchestrator.complete_gateway(gateway.parse_gateway_callback(payload))
    finally:
        _persist(store, orchestrator)

async def gateway_cancel(store: SessionStore, reason: Optional[str] = None) -> Outcome:
    context = await get_checkout(store)
    orchestrator = _orchestrator(store, context)
    try:
        return orchestrator.abandon_gateway(reason or "Payment cancelled")
    finally:
        _persist(store, orchestrator)

def abandon_checkout(store: SessionStore) -> None:
    clear_context(store)
    logger.info("checkout.abandon")

def capture_delivery(store: SessionStore, delivery: DeliveryDetails) -> DeliveryDetails:
    """Étape amont: enregistre l'adresse; un contexte ouvert devient obsolète."""
    write_delivery(store, delivery)
    clear_context(store)
    return delivery
