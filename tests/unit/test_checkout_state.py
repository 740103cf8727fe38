import pytest

from storefront.checkout.errors import (
    ConfirmationInProgress,
    GatewayUnavailable,
    InvalidTotalError,
    InvalidTransition,
    PaymentMethodUnavailable,
)
from storefront.checkout.models import GatewayOrder, PaymentMethod
from storefront.checkout.state import (
    Abandoned,
    AwaitingGatewayOrder,
    AwaitingGatewayResult,
    Confirmed,
    Confirming,
    ConfirmationSucceeded,
    CreateGatewayOrder,
    Fail,
    Failed,
    GatewayAbandoned,
    GatewayOrderCreated,
    GatewayPaid,
    Idle,
    OpenGatewayWidget,
    Reset,
    StoreInvoice,
    Submit,
    SubmitConfirmation,
    state_from_dict,
    state_to_dict,
    transition,
    uses_gateway,
)

ORDER = GatewayOrder(order_id="order_1", amount=80.0, currency="INR")


def _submit(method, total=80.0, gateway=True):
    return Submit(method=method, final_total=total, gateway_enabled=gateway, currency="INR")


def test_cod_goes_straight_to_confirming_without_transaction():
    step = transition(Idle(), _submit(PaymentMethod.CASH_ON_DELIVERY))
    assert step.state == Confirming(method=PaymentMethod.CASH_ON_DELIVERY)
    assert step.command == SubmitConfirmation(method=PaymentMethod.CASH_ON_DELIVERY, transaction_id=None)


def test_gateway_submit_requests_order_creation():
    step = transition(Idle(), _submit(PaymentMethod.HOSTED_GATEWAY))
    assert isinstance(step.state, AwaitingGatewayOrder)
    assert step.command == CreateGatewayOrder(amount=80.0, currency="INR")


def test_full_gateway_sequence():
    state = transition(Idle(), _submit(PaymentMethod.HOSTED_GATEWAY)).state
    step = transition(state, GatewayOrderCreated(ORDER))
    assert step.state == AwaitingGatewayResult(method=PaymentMethod.HOSTED_GATEWAY, order=ORDER)
    assert step.command == OpenGatewayWidget(ORDER)

    step = transition(step.state, GatewayPaid("pay_123"))
    assert step.state == Confirming(method=PaymentMethod.HOSTED_GATEWAY, transaction_id="pay_123")
    assert step.command.transaction_id == "pay_123"

    step = transition(step.state, ConfirmationSucceeded({"orderId": "ORD-1"}))
    assert step.state == Confirmed(invoice={"orderId": "ORD-1"})
    assert step.command == StoreInvoice({"orderId": "ORD-1"})


def test_card_uses_gateway_only_when_configured():
    assert uses_gateway(PaymentMethod.CARD, True) is True
    assert uses_gateway(PaymentMethod.CARD, False) is False
    step = transition(Idle(), _submit(PaymentMethod.CARD, gateway=False))
    assert isinstance(step.state, Confirming)


def test_paypal_is_rejected_before_any_command():
    with pytest.raises(PaymentMethodUnavailable):
        transition(Idle(), _submit(PaymentMethod.PAYPAL))


def test_gateway_without_key_is_rejected():
    with pytest.raises(GatewayUnavailable):
        transition(Idle(), _submit(PaymentMethod.HOSTED_GATEWAY, gateway=False))


def test_negative_total_is_rejected_and_zero_allowed():
    with pytest.raises(InvalidTotalError):
        transition(Idle(), _submit(PaymentMethod.CASH_ON_DELIVERY, total=-0.01))
    step = transition(Idle(), _submit(PaymentMethod.CASH_ON_DELIVERY, total=0))
    assert isinstance(step.state, Confirming)


def test_submit_while_confirming_is_refused():
    with pytest.raises(ConfirmationInProgress):
        transition(Confirming(method=PaymentMethod.CASH_ON_DELIVERY), _submit(PaymentMethod.CASH_ON_DELIVERY))


def test_gateway_paid_twice_is_refused():
    state = Confirming(method=PaymentMethod.HOSTED_GATEWAY, transaction_id="pay_1")
    with pytest.raises(ConfirmationInProgress):
        transition(state, GatewayPaid("pay_1"))


def test_confirmed_is_terminal():
    with pytest.raises(InvalidTransition):
        transition(Confirmed(invoice={}), _submit(PaymentMethod.CASH_ON_DELIVERY))
    with pytest.raises(InvalidTransition):
        transition(Confirmed(invoice={}), Reset())


@pytest.mark.parametrize("state", [
    AwaitingGatewayOrder(method=PaymentMethod.HOSTED_GATEWAY, amount=80.0, currency="INR"),
    AwaitingGatewayResult(method=PaymentMethod.HOSTED_GATEWAY, order=ORDER),
])
def test_widget_closed_gives_abandoned_then_reset(state):
    step = transition(state, GatewayAbandoned("Payment cancelled"))
    assert step.state == Abandoned(reason="Payment cancelled")
    assert step.command is None
    assert transition(step.state, Reset()).state == Idle()


def test_fail_then_reset_returns_to_idle():
    step = transition(Confirming(method=PaymentMethod.CASH_ON_DELIVERY), Fail("Payment failed"))
    assert step.state == Failed(reason="Payment failed")
    assert transition(step.state, Reset()).state == Idle()


def test_out_of_sequence_events_raise():
    with pytest.raises(InvalidTransition):
        transition(Idle(), GatewayPaid("pay_1"))
    with pytest.raises(InvalidTransition):
        transition(Idle(), ConfirmationSucceeded({}))
    with pytest.raises(InvalidTransition):
        transition(Idle(), Fail("x"))


def test_state_roundtrip_through_session_dict():
    state = AwaitingGatewayResult(method=PaymentMethod.CARD, order=ORDER)
    data = state_to_dict(state)
    assert data["status"] == "awaiting_gateway_result"
    assert data["method"] == "Card"
    assert data["order"]["orderId"] == "order_1"
    assert state_from_dict(data) == state


def test_state_from_empty_dict_is_idle():
    assert state_from_dict(None) == Idle()
    assert state_from_dict({"status": "unknown"}) == Idle()
