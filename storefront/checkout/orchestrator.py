"""
Orchestrateur de confirmation du paiement.

Exécute les commandes produites par la machine à états (state.transition):
- paiement direct (COD, Card sans passerelle): un seul appel de confirmation, transactionId=null
- passerelle hébergée: création de commande fournisseur, attente du widget, puis confirmation
  avec l'identifiant de transaction du fournisseur
- PayPal: refusé avant tout appel réseau

Seul ce module appelle l'endpoint de confirmation. Une confirmation en cours pour une
identité bloque toute nouvelle soumission (pas de double débit).
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from storefront.config import GATEWAY_CURRENCY, GATEWAY_NAME, GATEWAY_WIDGET_TIMEOUT, SUCCESS_PATH
from . import gateway
from . import repository
from .errors import ConfirmationInProgress, EmptyCartError, InvalidTransition, TransportError
from .models import ConfirmationRequest, GatewayOrder, GatewayResult, final_total
from .session_store import CheckoutContext, SessionStore, clear_context, write_invoice
from .state import (
    AwaitingGatewayResult,
    Confirming,
    ConfirmationSucceeded,
    CreateGatewayOrder,
    Fail,
    GatewayAbandoned,
    GatewayOrderCreated,
    GatewayPaid,
    PaymentState,
    Reset,
    Submit,
    SubmitConfirmation,
    TERMINAL,
    state_from_dict,
    state_to_dict,
    transition,
)

logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "Payment failed"
TRANSPORT_FAILURE_MESSAGE = "Something went wrong"

# Identités dont la confirmation est en vol dans ce process
_inflight: Set[str] = set()

GatewayWidget = Callable[[Dict[str, Any]], Awaitable[GatewayResult]]


@dataclass
class Outcome:
    """Résultat d'une étape: état atteint + ce que la page doit afficher ou faire."""
    state: PaymentState
    message: Optional[str] = None
    redirect_to: Optional[str] = None
    widget: Optional[Dict[str, Any]] = None
    invoice: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.status.value,
            "message": self.message,
            "redirect": self.redirect_to,
            "widget": self.widget,
            "invoice": self.invoice,
        }


class PaymentOrchestrator:
    def __init__(
        self,
        context: CheckoutContext,
        store: SessionStore,
        *,
        token: Optional[str] = None,
        currency: str = GATEWAY_CURRENCY,
    ):
        self.context = context
        self.store = store
        self.token = token
        self.currency = currency
        self.state: PaymentState = state_from_dict(context.payment_state)

    @property
    def finished(self) -> bool:
        return isinstance(self.state, TERMINAL)

    def _apply(self, event):
        step = transition(self.state, event)
        self.state = step.state
        self.context.payment_state = state_to_dict(step.state)
        return step.command

    def _guard(self) -> None:
        if isinstance(self.state, Confirming) or self.context.identity in _inflight:
            raise ConfirmationInProgress()

    def _fail(self, reason: str) -> Outcome:
        """Failed(reason) est signalé puis l'état revient à Idle (résumé et remise conservés)."""
        self._apply(Fail(reason))
        failed = self.state
        self._apply(Reset())
        logger.info("checkout.payment failed user=%s reason=%s", self.context.identity, reason)
        return Outcome(failed, message=reason)

    async def submit(self) -> Outcome:
        """Démarre une tentative de paiement avec le moyen sélectionné."""
        self._guard()
        summary = self.context.summary
        if summary is None or summary.is_empty:
            raise EmptyCartError()
        total = final_total(summary.total_amount, self.context.discount)
        command = self._apply(Submit(
            method=self.context.method,
            final_total=total,
            gateway_enabled=self.context.gateway_enabled,
            currency=self.currency,
        ))
        if isinstance(command, CreateGatewayOrder):
            return await self._create_gateway_order(command)
        return await self._confirm(command)

    async def _create_gateway_order(self, command: CreateGatewayOrder) -> Outcome:
        try:
            status, data = await repository.create_gateway_order(command.amount, command.currency, token=self.token)
        except TransportError as e:
            return self._fail(f"Payment error: {e.message or 'Unknown'}")
        if status != 200 or not data.get("orderId"):
            return self._fail(data.get("error") or f"Could not create {GATEWAY_NAME} order")

        order = GatewayOrder(
            order_id=str(data["orderId"]),
            amount=float(data.get("amount") or command.amount),
            currency=str(data.get("currency") or command.currency),
        )
        opened = self._apply(GatewayOrderCreated(order))
        logger.info("checkout.gateway order created user=%s order=%s amount=%s", self.context.identity, order.order_id, order.amount)
        return Outcome(self.state, widget=gateway.widget_options(self.context.gateway_key, opened.order))

    async def complete_gateway(self, result: GatewayResult) -> Outcome:
        """Reprise après le widget hébergé: confirme si le fournisseur a autorisé le paiement."""
        self._guard()
        if not isinstance(self.state, AwaitingGatewayResult):
            raise InvalidTransition("No payment is awaiting the gateway")
        if not result.success or not result.transaction_id:
            return self._fail(result.error or GENERIC_FAILURE_MESSAGE)
        if result.order_id and result.order_id != self.state.order.order_id:
            logger.warning("checkout.gateway order mismatch user=%s expected=%s got=%s",
                           self.context.identity, self.state.order.order_id, result.order_id)
            return self._fail(GENERIC_FAILURE_MESSAGE)
        command = self._apply(GatewayPaid(result.transaction_id))
        return await self._confirm(command)

    def abandon_gateway(self, reason: str = "Payment cancelled") -> Outcome:
        """Widget fermé ou expiré: fin de tentative Abandoned, sans appel de confirmation."""
        self._apply(GatewayAbandoned(reason))
        abandoned = self.state
        self._apply(Reset())
        logger.info("checkout.gateway abandoned user=%s reason=%s", self.context.identity, reason)
        return Outcome(abandoned, message=reason)

    async def pay(self, widget: GatewayWidget, *, timeout: Optional[float] = GATEWAY_WIDGET_TIMEOUT) -> Outcome:
        """
        Déroulé complet en une seule coroutine: soumission, attente du widget (bornée
        par timeout), confirmation. L'annulation de la tâche appelante vaut abandon.
        """
        outcome = await self.submit()
        if not isinstance(self.state, AwaitingGatewayResult):
            return outcome
        try:
            result = await asyncio.wait_for(widget(outcome.widget or {}), timeout)
        except asyncio.TimeoutError:
            return self.abandon_gateway("Payment window timed out")
        except asyncio.CancelledError:
            self.abandon_gateway()
            raise
        return await self.complete_gateway(result)

    async def _confirm(self, command: SubmitConfirmation) -> Outcome:
        identity = self.context.identity
        payload = ConfirmationRequest(
            user_id=identity,
            delivery=self.context.delivery.to_wire(),
            discount=self.context.discount,
            payment_method=command.method,
            transaction_id=command.transaction_id,
        ).to_wire()

        _inflight.add(identity)
        try:
            status, data = await repository.confirm_payment(payload, token=self.token)
        except TransportError:
            return self._fail(TRANSPORT_FAILURE_MESSAGE)
        finally:
            _inflight.discard(identity)

        if status != 200:
            return self._fail(data.get("message") or GENERIC_FAILURE_MESSAGE)

        stored = self._apply(ConfirmationSucceeded(data))
        write_invoice(self.store, stored.invoice)
        clear_context(self.store)
        logger.info("checkout.confirm ok user=%s method=%s transaction=%s",
                    identity, command.method.value, command.transaction_id)
        return Outcome(self.state, redirect_to=SUCCESS_PATH, invoice=stored.invoice)
