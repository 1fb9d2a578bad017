import json
from types import SimpleNamespace

import pytest

from models.confirmation import ConfirmationMessage, Tone
from models.order import OrderStatus
from models.outcome import OrderOutcome
from models.risk import RiskAssessment, RiskLevel
from pipeline.errors import CollaboratorUnavailable, ConfigurationError
from pipeline.failure_injector import FailureInjector
from pipeline.result import Failure, Success, result_from_dict, result_to_dict
from pipeline.steps import ConfirmationStep, PaymentCaptureStep, RiskAssessmentStep
from services.advice import OpenAiAdviceGenerator, TemplateAdviceGenerator, fallback_message
from services.payment_gateway import FakeCardGateway
from services.risk_scoring import OpenAiRiskScorer, RuleBasedRiskScorer

from conftest import make_order

REJECTED = RiskAssessment(approved=False, risk_score=0.95, reason="fraud", risk_level=RiskLevel.HIGH)


class FakeCompletions:
    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_openai(reply=None, error=None):
    completions = FakeCompletions(reply, error)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


def rejected_outcome(order_id="ORDER-1"):
    return OrderOutcome.started(order_id).with_risk(REJECTED).resolve(OrderStatus.REJECTED_RISK)


@pytest.mark.asyncio
@pytest.mark.parametrize("order_id", ["FRAUD-TEST-1", "order-fraud-9", "xFrAuDx"])
async def test_fraud_marker_rejects(order_id):
    result = await RiskAssessmentStep(RuleBasedRiskScorer()).execute(make_order(order_id))
    assert isinstance(result, Success)
    assert result.value.approved is False
    assert result.value.risk_level == RiskLevel.HIGH


@pytest.mark.asyncio
async def test_quantity_threshold():
    step = RiskAssessmentStep(RuleBasedRiskScorer())
    at_threshold = await step.execute(make_order("ORDER-1", 60, 40))
    over_threshold = await step.execute(make_order("ORDER-2", 50, 51))
    assert at_threshold.value.approved is True
    assert at_threshold.value.risk_level == RiskLevel.LOW
    assert over_threshold.value.approved is False
    assert "101" in over_threshold.value.reason


@pytest.mark.asyncio
async def test_custom_quantity_threshold():
    step = RiskAssessmentStep(RuleBasedRiskScorer(quantity_threshold=5))
    result = await step.execute(make_order("ORDER-1", 3, 3))
    assert result.value.approved is False


@pytest.mark.asyncio
async def test_risk_step_reports_injected_outage_as_failure():
    step = RiskAssessmentStep(RuleBasedRiskScorer(), injector=FailureInjector(1.0, seed=0))
    result = await step.execute(make_order())
    assert isinstance(result, Failure)
    assert "unavailable" in result.reason


@pytest.mark.asyncio
async def test_payment_amount_is_quantity_times_unit_price():
    gateway = FakeCardGateway(FailureInjector(0.0, seed=1))
    step = PaymentCaptureStep(gateway)
    result = await step.execute(make_order("ORDER-1", 2, 1))
    assert isinstance(result, Success)
    assert result.value.amount_charged == 30.0
    assert result.value.charge_reference.startswith("CHG-")
    assert gateway.attempt_count == 1


@pytest.mark.asyncio
async def test_payment_uses_item_prices_when_given():
    step = PaymentCaptureStep(FakeCardGateway(FailureInjector(0.0)), prices={"SKU-1": 2.5})
    assert step.amount_for(make_order("ORDER-1", 4, 1)) == 20.0


@pytest.mark.parametrize("unit_price", [0.0, -10.0])
def test_payment_step_rejects_non_positive_unit_price(unit_price):
    with pytest.raises(ConfigurationError):
        PaymentCaptureStep(FakeCardGateway(FailureInjector(0.0)), unit_price=unit_price)


def test_payment_step_rejects_non_positive_item_price():
    with pytest.raises(ConfigurationError):
        PaymentCaptureStep(FakeCardGateway(FailureInjector(0.0)), prices={"WIDGET": 5.0, "GADGET": -1.0})


@pytest.mark.asyncio
async def test_payment_decline_is_a_failure_not_an_exception():
    step = PaymentCaptureStep(FakeCardGateway(FailureInjector(1.0, seed=1)))
    result = await step.execute(make_order())
    assert isinstance(result, Failure)
    assert "Card declined" in result.reason


@pytest.mark.asyncio
async def test_confirmation_uses_generator():
    result = await ConfirmationStep(TemplateAdviceGenerator()).execute(rejected_outcome())
    assert isinstance(result, Success)
    assert result.value.tone == Tone.APOLOGETIC


class BrokenGenerator:
    def __init__(self, error=None, reply=None):
        self.error = error
        self.reply = reply

    async def generate(self, outcome):
        if self.error:
            raise self.error
        return self.reply


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "generator",
    [
        BrokenGenerator(error=RuntimeError("boom")),
        BrokenGenerator(error=CollaboratorUnavailable("advice", "no key")),
        BrokenGenerator(reply={"subject": "not a message"}),
    ],
)
async def test_confirmation_falls_back_to_template(generator):
    outcome = rejected_outcome()
    result = await ConfirmationStep(generator).execute(outcome)
    assert isinstance(result, Success)
    assert result.value == fallback_message(outcome)


@pytest.mark.parametrize(
    "status,tone",
    [
        (OrderStatus.APPROVED, Tone.POSITIVE),
        (OrderStatus.REJECTED_RISK, Tone.APOLOGETIC),
        (OrderStatus.REJECTED_PAYMENT, Tone.APOLOGETIC),
        (OrderStatus.CANCELLED, Tone.APOLOGETIC),
        (None, Tone.NEUTRAL),
    ],
)
def test_fallback_message_per_status(status, tone):
    outcome = OrderOutcome.model_construct(order_id="ORDER-7", status=status)
    message = fallback_message(outcome)
    assert message.tone == tone
    assert "ORDER-7" in message.subject


@pytest.mark.asyncio
async def test_openai_scorer_parses_fenced_json():
    reply = "```json\n" + json.dumps({"approved": False, "riskScore": 0.8, "reason": "odd", "riskLevel": "high"}) + "\n```"
    client, completions = fake_openai(reply=reply)
    assessment = await OpenAiRiskScorer(client=client).assess(make_order())
    assert assessment == RiskAssessment(approved=False, risk_score=0.8, reason="odd", risk_level=RiskLevel.HIGH)
    assert completions.calls[0]["model"] == "gpt-4o-mini"


@pytest.mark.asyncio
@pytest.mark.parametrize("reply,error", [(None, ConnectionError("down")), ("not json", None), ('{"approved": true}', None)])
async def test_openai_scorer_fails_closed(reply, error):
    client, _ = fake_openai(reply=reply, error=error)
    assessment = await OpenAiRiskScorer(client=client).assess(make_order())
    assert assessment.approved is True
    assert assessment.risk_level == RiskLevel.MEDIUM
    assert assessment.risk_score == 0.5


@pytest.mark.asyncio
async def test_openai_advice_parses_reply_and_falls_back():
    client, _ = fake_openai(reply=json.dumps({"subject": "Hi", "body": "Sorry.", "tone": "apologetic"}))
    message = await OpenAiAdviceGenerator(client=client).generate(rejected_outcome())
    assert message == ConfirmationMessage(subject="Hi", body="Sorry.", tone=Tone.APOLOGETIC)

    client, _ = fake_openai(reply='{"subject": "Hi"}')
    outcome = rejected_outcome()
    assert await OpenAiAdviceGenerator(client=client).generate(outcome) == fallback_message(outcome)


def test_openai_collaborators_need_credentials():
    with pytest.raises(CollaboratorUnavailable):
        OpenAiRiskScorer(api_key=None)
    with pytest.raises(CollaboratorUnavailable):
        OpenAiAdviceGenerator(api_key="")


def test_step_results_serialize():
    assert result_from_dict(result_to_dict(Success(REJECTED)), lambda v: RiskAssessment(**v)) == Success(REJECTED)
    assert result_from_dict(result_to_dict(Failure("busy")), lambda v: v) == Failure("busy")
