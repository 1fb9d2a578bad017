import pytest
from pydantic import ValidationError

from models.confirmation import ConfirmationMessage, Tone
from models.order import LineItem, Order, OrderStatus, PipelineRequest
from models.outcome import OrderOutcome
from models.payment import PaymentOutcome
from models.risk import RiskAssessment, RiskLevel

APPROVED_RISK = RiskAssessment(approved=True, risk_score=0.1, reason="ok", risk_level=RiskLevel.LOW)
REJECTED_RISK = RiskAssessment(approved=False, risk_score=0.95, reason="fraud", risk_level=RiskLevel.HIGH)
CHARGED = PaymentOutcome(success=True, charge_reference="CHG-1", message="ok", amount_charged=30.0)
DECLINED = PaymentOutcome.declined("Card declined")
MESSAGE = ConfirmationMessage(subject="s", body="b", tone=Tone.NEUTRAL)


@pytest.mark.parametrize("quantity", [0, -1])
def test_line_item_requires_positive_quantity(quantity):
    with pytest.raises(ValidationError):
        LineItem(item_code="SKU-1", quantity=quantity)


def test_order_rejects_empty_id_and_no_items():
    with pytest.raises(ValidationError):
        Order(id="", items=[LineItem(item_code="SKU-1", quantity=1)])
    with pytest.raises(ValidationError):
        Order(id="ORDER-1", items=[])


def test_order_is_immutable_and_generates_ids():
    order = Order(items=[LineItem(item_code="SKU-1", quantity=2), LineItem(item_code="SKU-2", quantity=3)])
    assert order.id.startswith("ORDER-")
    assert order.total_quantity == 5
    with pytest.raises(ValidationError):
        order.id = "other"


def test_pipeline_request_validates_failure_rate():
    order = Order(id="ORDER-1", items=[LineItem(item_code="SKU-1", quantity=1)])
    with pytest.raises(ValidationError):
        PipelineRequest(order=order, payment_failure_rate=1.5)


def test_payment_outcome_consistency():
    with pytest.raises(ValidationError):
        PaymentOutcome(success=True, message="no reference")
    with pytest.raises(ValidationError):
        PaymentOutcome(success=False, charge_reference="CHG-1")
    with pytest.raises(ValidationError):
        PaymentOutcome(success=False, amount_charged=10.0)
    with pytest.raises(ValidationError):
        PaymentOutcome(success=True, charge_reference="CHG-1", amount_charged=0.0)
    assert DECLINED.amount_charged == 0.0 and DECLINED.charge_reference is None


def test_risk_score_range():
    with pytest.raises(ValidationError):
        RiskAssessment(approved=True, risk_score=1.5, reason="x", risk_level=RiskLevel.LOW)


def test_snapshots_are_new_objects():
    started = OrderOutcome.started("ORDER-1")
    with_risk = started.with_risk(APPROVED_RISK)
    assert started.risk_assessment is None
    assert with_risk is not started and with_risk.risk_assessment == APPROVED_RISK

    resolved = with_risk.with_payment(CHARGED).resolve(OrderStatus.APPROVED)
    done = resolved.with_confirmation(MESSAGE)
    assert resolved.confirmation is None
    assert resolved.is_terminal and not with_risk.is_terminal
    assert done.is_complete and not resolved.is_complete


def test_rejected_risk_cannot_carry_payment():
    with pytest.raises(ValidationError):
        OrderOutcome(order_id="ORDER-1", status=OrderStatus.REJECTED_RISK, risk_assessment=APPROVED_RISK)
    with pytest.raises(ValidationError):
        OrderOutcome(order_id="ORDER-1", risk_assessment=REJECTED_RISK, payment_outcome=DECLINED)


def test_payment_statuses_require_approved_risk_and_matching_payment():
    with pytest.raises(ValidationError):
        OrderOutcome(order_id="ORDER-1", status=OrderStatus.APPROVED, risk_assessment=APPROVED_RISK)
    with pytest.raises(ValidationError):
        OrderOutcome(order_id="ORDER-1", status=OrderStatus.APPROVED, risk_assessment=APPROVED_RISK, payment_outcome=DECLINED)
    with pytest.raises(ValidationError):
        OrderOutcome(order_id="ORDER-1", status=OrderStatus.REJECTED_PAYMENT, risk_assessment=APPROVED_RISK, payment_outcome=CHARGED)
    outcome = OrderOutcome(
        order_id="ORDER-1", status=OrderStatus.REJECTED_PAYMENT, risk_assessment=APPROVED_RISK, payment_outcome=DECLINED
    )
    assert outcome.payment_outcome.success is False


def test_in_progress_outcome_cannot_be_confirmed():
    with pytest.raises(ValidationError):
        OrderOutcome.started("ORDER-1").with_confirmation(MESSAGE)


def test_outcome_cannot_be_resolved_twice():
    outcome = OrderOutcome.started("ORDER-1").with_risk(REJECTED_RISK).resolve(OrderStatus.REJECTED_RISK)
    with pytest.raises(ValueError):
        outcome.resolve(OrderStatus.CANCELLED)


def test_outcome_round_trips_through_dict():
    outcome = (
        OrderOutcome.started("ORDER-1")
        .with_risk(APPROVED_RISK)
        .with_payment(CHARGED)
        .with_attempts("payment", 2)
        .resolve(OrderStatus.APPROVED)
        .with_confirmation(MESSAGE)
    )
    assert OrderOutcome(**outcome.to_dict()) == outcome
