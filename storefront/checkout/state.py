"""
Machine à états du paiement, sous forme de variantes explicites.

    Idle -> AwaitingGatewayOrder -> AwaitingGatewayResult -> Confirming -> Confirmed
    Idle -> Confirming -> Confirmed                      (paiement direct, ex: COD)
    Failed(reason) atteignable depuis tout état non terminal, puis Reset -> Idle
    Abandoned(reason): widget hébergé fermé ou expiré (fin de tentative, distincte de Failed)

transition() est pure: elle retourne le prochain état et la commande à exécuter
(appel réseau, ouverture du widget, stockage de la facture). L'orchestrateur
exécute les commandes; les tests peuvent vérifier les transitions sans réseau.
"""
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Union

from .errors import (
    ConfirmationInProgress,
    GatewayUnavailable,
    InvalidTotalError,
    InvalidTransition,
    PaymentMethodUnavailable,
)
from .models import GatewayOrder, PaymentMethod


class Status(str, Enum):
    IDLE = "idle"
    AWAITING_GATEWAY_ORDER = "awaiting_gateway_order"
    AWAITING_GATEWAY_RESULT = "awaiting_gateway_result"
    CONFIRMING = "confirming"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    ABANDONED = "abandoned"


# --- États ---

@dataclass(frozen=True)
class Idle:
    status = Status.IDLE


@dataclass(frozen=True)
class AwaitingGatewayOrder:
    method: PaymentMethod
    amount: float
    currency: str
    status = Status.AWAITING_GATEWAY_ORDER


@dataclass(frozen=True)
class AwaitingGatewayResult:
    method: PaymentMethod
    order: GatewayOrder
    status = Status.AWAITING_GATEWAY_RESULT


@dataclass(frozen=True)
class Confirming:
    method: PaymentMethod
    transaction_id: Optional[str] = None
    status = Status.CONFIRMING


@dataclass(frozen=True)
class Confirmed:
    invoice: Dict[str, Any] = field(default_factory=dict)
    status = Status.CONFIRMED


@dataclass(frozen=True)
class Failed:
    reason: str
    status = Status.FAILED


@dataclass(frozen=True)
class Abandoned:
    reason: str
    status = Status.ABANDONED


PaymentState = Union[Idle, AwaitingGatewayOrder, AwaitingGatewayResult, Confirming, Confirmed, Failed, Abandoned]

TERMINAL = (Confirmed,)


# --- Événements ---

@dataclass(frozen=True)
class Submit:
    method: PaymentMethod
    final_total: float
    gateway_enabled: bool
    currency: str


@dataclass(frozen=True)
class GatewayOrderCreated:
    order: GatewayOrder


@dataclass(frozen=True)
class GatewayPaid:
    transaction_id: str


@dataclass(frozen=True)
class GatewayAbandoned:
    reason: str = "Payment cancelled"


@dataclass(frozen=True)
class ConfirmationSucceeded:
    invoice: Dict[str, Any]


@dataclass(frozen=True)
class Fail:
    reason: str


@dataclass(frozen=True)
class Reset:
    pass


Event = Union[Submit, GatewayOrderCreated, GatewayPaid, GatewayAbandoned, ConfirmationSucceeded, Fail, Reset]


# --- Commandes (effets de bord demandés à l'orchestrateur) ---

@dataclass(frozen=True)
class CreateGatewayOrder:
    amount: float
    currency: str


@dataclass(frozen=True)
class OpenGatewayWidget:
    order: GatewayOrder


@dataclass(frozen=True)
class SubmitConfirmation:
    method: PaymentMethod
    transaction_id: Optional[str] = None


@dataclass(frozen=True)
class StoreInvoice:
    invoice: Dict[str, Any]


Command = Union[CreateGatewayOrder, OpenGatewayWidget, SubmitConfirmation, StoreInvoice]


@dataclass(frozen=True)
class Transition:
    state: PaymentState
    command: Optional[Command] = None


def uses_gateway(method: PaymentMethod, gateway_enabled: bool) -> bool:
    """Razorpay passe toujours par le widget; Card seulement si la passerelle est configurée."""
    if method is PaymentMethod.HOSTED_GATEWAY:
        return True
    return method is PaymentMethod.CARD and gateway_enabled


def _submit(state: PaymentState, event: Submit) -> Transition:
    if isinstance(state, Confirming):
        raise ConfirmationInProgress()
    if not isinstance(state, (Idle, Failed, AwaitingGatewayResult)):
        raise InvalidTransition(f"Cannot start a payment from state {state.status.value}")
    if event.method is PaymentMethod.PAYPAL:
        raise PaymentMethodUnavailable()
    if event.final_total < 0:
        raise InvalidTotalError()
    if event.method is PaymentMethod.HOSTED_GATEWAY and not event.gateway_enabled:
        raise GatewayUnavailable()

    if uses_gateway(event.method, event.gateway_enabled):
        return Transition(
            AwaitingGatewayOrder(method=event.method, amount=event.final_total, currency=event.currency),
            CreateGatewayOrder(amount=event.final_total, currency=event.currency),
        )
    return Transition(Confirming(method=event.method), SubmitConfirmation(method=event.method))


def transition(state: PaymentState, event: Event) -> Transition:
    """Calcule (prochain état, commande). Lève InvalidTransition si l'événement est hors séquence."""
    if isinstance(event, Submit):
        return _submit(state, event)

    if isinstance(event, GatewayOrderCreated) and isinstance(state, AwaitingGatewayOrder):
        return Transition(AwaitingGatewayResult(method=state.method, order=event.order), OpenGatewayWidget(event.order))

    if isinstance(event, GatewayPaid) and isinstance(state, AwaitingGatewayResult):
        return Transition(
            Confirming(method=state.method, transaction_id=event.transaction_id),
            SubmitConfirmation(method=state.method, transaction_id=event.transaction_id),
        )

    if isinstance(event, GatewayPaid) and isinstance(state, Confirming):
        raise ConfirmationInProgress()

    if isinstance(event, GatewayAbandoned) and isinstance(state, (AwaitingGatewayOrder, AwaitingGatewayResult)):
        return Transition(Abandoned(reason=event.reason))

    if isinstance(event, ConfirmationSucceeded) and isinstance(state, Confirming):
        return Transition(Confirmed(invoice=dict(event.invoice)), StoreInvoice(dict(event.invoice)))

    if isinstance(event, Fail) and isinstance(state, (AwaitingGatewayOrder, AwaitingGatewayResult, Confirming)):
        return Transition(Failed(reason=event.reason))

    if isinstance(event, Reset) and isinstance(state, (Idle, Failed, Abandoned)):
        return Transition(Idle())

    raise InvalidTransition(f"{type(event).__name__} not allowed in state {state.status.value}")


# --- Sérialisation (persistance dans la session) ---

def state_to_dict(state: PaymentState) -> Dict[str, Any]:
    data = asdict(state)
    for key, value in list(data.items()):
        if isinstance(value, PaymentMethod):
            data[key] = value.value
    if isinstance(state, AwaitingGatewayResult):
        data["order"] = state.order.to_wire()
    data["status"] = state.status.value
    return data


def state_from_dict(data: Optional[Dict[str, Any]]) -> PaymentState:
    data = dict(data or {})
    status = data.pop("status", Status.IDLE.value)
    if status == Status.AWAITING_GATEWAY_ORDER.value:
        return AwaitingGatewayOrder(
            method=PaymentMethod.parse(data.get("method")),
            amount=float(data.get("amount") or 0),
            currency=str(data.get("currency") or ""),
        )
    if status == Status.AWAITING_GATEWAY_RESULT.value:
        return AwaitingGatewayResult(
            method=PaymentMethod.parse(data.get("method")),
            order=GatewayOrder.model_validate(data.get("order") or {}),
        )
    if status == Status.CONFIRMING.value:
        return Confirming(method=PaymentMethod.parse(data.get("method")), transaction_id=data.get("transaction_id"))
    if status == Status.CONFIRMED.value:
        return Confirmed(invoice=data.get("invoice") or {})
    if status == Status.FAILED.value:
        return Failed(reason=str(data.get("reason") or ""))
    if status == Status.ABANDONED.value:
        return Abandoned(reason=str(data.get("reason") or ""))
    return Idle()
