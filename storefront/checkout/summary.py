"""
Récupération du résumé de commande (source unique de vérité des lignes tarifées).
- Préconditions: identité puis adresse de livraison présentes dans la session.
- Résumé vide ou absent => EmptyCartError (retour au panier, pas d'erreur affichée).
- Pas de retry: un échec réseau remonte en TransportError (message inline).
"""
import logging
from typing import Optional

from pydantic import ValidationError

from . import repository
from .errors import EmptyCartError, PreconditionFailed, TransportError
from .models import CheckoutSummary, DeliveryDetails
from .session_store import SessionStore, read_delivery, read_identity

logger = logging.getLogger(__name__)

SUMMARY_ERROR_MESSAGE = "Error loading order summary"


def require_identity(store: SessionStore) -> str:
    identity = read_identity(store)
    if not identity:
        raise PreconditionFailed("identity")
    return identity

def require_delivery(store: SessionStore) -> DeliveryDetails:
    delivery = read_delivery(store)
    if delivery is None:
        raise PreconditionFailed("delivery")
    return delivery

async def fetch_summary(identity: str, *, token: Optional[str] = None) -> CheckoutSummary:
    try:
        data = await repository.fetch_checkout_summary(identity, token=token)
    except TransportError as e:
        raise TransportError(SUMMARY_ERROR_MESSAGE) from e
    try:
        summary = CheckoutSummary.model_validate(data or {})
    except ValidationError as e:
        logger.warning("checkout.summary invalid payload user=%s", identity)
        raise TransportError(SUMMARY_ERROR_MESSAGE) from e
    if summary.is_empty:
        raise EmptyCartError()
    items_total = round(sum(i.item_total for i in summary.items), 2)
    if items_total != round(summary.total_amount, 2):
        # Le total serveur fait foi; on trace seulement l'incohérence
        logger.warning("checkout.summary total mismatch user=%s total=%s items=%s", identity, summary.total_amount, items_total)
    return summary
