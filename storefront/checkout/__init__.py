"""
Module 'checkout' (feature-first): point d'entrée public.
Réunit stockage de session, résumé, coupons, moyens de paiement et orchestrateur.
"""

from .errors import (
    CheckoutError,
    PreconditionFailed,
    EmptyCartError,
    InvalidCouponError,
    GatewayUnavailable,
    PaymentMethodUnavailable,
    InvalidTotalError,
    ConfirmationFailed,
    ConfirmationInProgress,
    InvalidTransition,
    TransportError,
)
from .models import PaymentMethod, CheckoutSummary, SummaryItem, DeliveryDetails, GatewayOrder, GatewayResult, final_total
from .session_store import SessionStore, CheckoutContext, get_session_store
from .orchestrator import PaymentOrchestrator, Outcome

__all__ = [
    # errors
    "CheckoutError",
    "PreconditionFailed",
    "EmptyCartError",
    "InvalidCouponError",
    "GatewayUnavailable",
    "PaymentMethodUnavailable",
    "InvalidTotalError",
    "ConfirmationFailed",
    "ConfirmationInProgress",
    "InvalidTransition",
    "TransportError",
    # models
    "PaymentMethod",
    "CheckoutSummary",
    "SummaryItem",
    "DeliveryDetails",
    "GatewayOrder",
    "GatewayResult",
    "final_total",
    # session
    "SessionStore",
    "CheckoutContext",
    "get_session_store",
    # orchestrator
    "PaymentOrchestrator",
    "Outcome",
]
