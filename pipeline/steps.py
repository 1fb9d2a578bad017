import logging
from typing import Dict, Optional

from models.confirmation import ConfirmationMessage
from models.order import Order
from models.outcome import OrderOutcome
from models.payment import PaymentOutcome
from models.risk import RiskAssessment
from pipeline.errors import ConfigurationError
from pipeline.failure_injector import FailureInjector
from pipeline.result import Failure, StepResult, Success
from services.advice import AdviceGenerator, fallback_message
from services.payment_gateway import PaymentGateway
from services.risk_scoring import RiskScorer

logger = logging.getLogger(__name__)

RISK = "risk"
PAYMENT = "payment"
CONFIRMATION = "confirmation"

PRICE_PER_ITEM = 10.0


class RiskAssessmentStep:
    """Scores an order. A rejection is a successful step with approved=False.

    An optional injector simulates the scoring service being briefly
    unreachable; those attempts come back as Failure and are retried.
    """

    name = RISK

    def __init__(self, scorer: RiskScorer, injector: Optional[FailureInjector] = None):
        self.scorer = scorer
        self.injector = injector

    async def execute(self, order: Order) -> StepResult[RiskAssessment]:
        if self.injector is not None and self.injector.should_fail():
            return Failure(f"Risk service temporarily unavailable (simulated failure #{self.injector.attempts})")
        assessment = await self.scorer.assess(order)
        logger.info(
            f"Risk assessment for order {order.id}: score={assessment.risk_score}, "
            f"level={assessment.risk_level.value}, approved={assessment.approved}"
        )
        return Success(assessment)


class PaymentCaptureStep:
    """Charges the order total. Declines are Failures, so the orchestrator retries them."""

    name = PAYMENT

    def __init__(
        self,
        gateway: PaymentGateway,
        unit_price: float = PRICE_PER_ITEM,
        prices: Optional[Dict[str, float]] = None,
    ):
        if unit_price <= 0:
            raise ConfigurationError(f"unit_price must be positive, got {unit_price}")
        for item_code, price in (prices or {}).items():
            if price <= 0:
                raise ConfigurationError(f"price for {item_code} must be positive, got {price}")
        self.gateway = gateway
        self.unit_price = unit_price
        self.prices = dict(prices or {})

    def amount_for(self, order: Order) -> float:
        return sum(item.quantity * self.prices.get(item.item_code, self.unit_price) for item in order.items)

    async def execute(self, order: Order) -> StepResult[PaymentOutcome]:
        amount = self.amount_for(order)
        outcome = await self.gateway.charge(order.id, amount)
        if not outcome.success:
            return Failure(outcome.message or "Payment declined")
        return Success(outcome)


class ConfirmationStep:
    """Asks the advice collaborator for a customer message. Never fails.

    Anything the collaborator raises, including CollaboratorUnavailable, is
    replaced by the templated message for the outcome's status.
    """

    name = CONFIRMATION

    def __init__(self, generator: AdviceGenerator):
        self.generator = generator

    @staticmethod
    def fallback(outcome: OrderOutcome) -> ConfirmationMessage:
        return fallback_message(outcome)

    async def execute(self, outcome: OrderOutcome) -> StepResult[ConfirmationMessage]:
        try:
            message = await self.generator.generate(outcome)
            if not isinstance(message, ConfirmationMessage):
                raise TypeError(f"expected ConfirmationMessage, got {type(message).__name__}")
        except Exception as e:
            logger.warning(f"Advice generation failed for order {outcome.order_id}, using template: {e}")
            message = self.fallback(outcome)
        return Success(message)
