from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Dict, Optional

from models.confirmation import ConfirmationMessage
from models.order import OrderStatus
from models.payment import PaymentOutcome
from models.risk import RiskAssessment


class OrderOutcome(BaseModel):
    """How far an order got through the pipeline, and with what result.

    Outcomes are immutable snapshots. The orchestrator starts from
    `OrderOutcome.started(order_id)` and derives each later snapshot with the
    `with_*`/`resolve` helpers, which re-run validation so every snapshot
    satisfies the invariants below:

    - a snapshot without a status is still in progress and has no confirmation
    - REJECTED_RISK has a rejected risk assessment and no payment outcome
    - APPROVED and REJECTED_PAYMENT have an approved risk assessment and a
      payment outcome whose success matches the status
    - a payment outcome only exists after an approved risk assessment
    """

    model_config = ConfigDict(frozen=True)

    order_id: str = Field(min_length=1)
    status: Optional[OrderStatus] = None
    risk_assessment: Optional[RiskAssessment] = None
    payment_outcome: Optional[PaymentOutcome] = None
    confirmation: Optional[ConfirmationMessage] = None
    attempts: Dict[str, int] = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_invariants(self):
        risk = self.risk_assessment
        payment = self.payment_outcome

        if payment is not None and (risk is None or not risk.approved):
            raise ValueError("payment outcome requires an approved risk assessment")

        if self.status is None:
            if self.confirmation is not None:
                raise ValueError("an in-progress outcome cannot carry a confirmation")
        elif self.status == OrderStatus.REJECTED_RISK:
            if risk is None or risk.approved:
                raise ValueError("REJECTED_RISK requires a rejected risk assessment")
            if payment is not None:
                raise ValueError("REJECTED_RISK cannot carry a payment outcome")
        elif self.status in (OrderStatus.APPROVED, OrderStatus.REJECTED_PAYMENT):
            if risk is None or not risk.approved:
                raise ValueError(f"{self.status.value} requires an approved risk assessment")
            if payment is None:
                raise ValueError(f"{self.status.value} requires a payment outcome")
            if payment.success != (self.status == OrderStatus.APPROVED):
                raise ValueError(f"{self.status.value} does not match payment success={payment.success}")
        return self

    @classmethod
    def started(cls, order_id: str) -> "OrderOutcome":
        return cls(order_id=order_id)

    @property
    def is_terminal(self) -> bool:
        return self.status is not None

    @property
    def is_complete(self) -> bool:
        """Terminal and confirmed: the only shape ever handed back to callers."""
        return self.status is not None and self.confirmation is not None

    def _evolve(self, **changes) -> "OrderOutcome":
        return type(self)(**{**dict(self), **changes})

    def with_risk(self, assessment: RiskAssessment) -> "OrderOutcome":
        return self._evolve(risk_assessment=assessment)

    def with_payment(self, payment: PaymentOutcome) -> "OrderOutcome":
        return self._evolve(payment_outcome=payment)

    def with_attempts(self, step: str, count: int) -> "OrderOutcome":
        return self._evolve(attempts={**self.attempts, step: count})

    def resolve(self, status: OrderStatus) -> "OrderOutcome":
        if self.is_terminal:
            raise ValueError(f"outcome for {self.order_id} is already resolved as {self.status.value}")
        return self._evolve(status=status)

    def with_confirmation(self, confirmation: ConfirmationMessage) -> "OrderOutcome":
        return self._evolve(confirmation=confirmation)

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")
