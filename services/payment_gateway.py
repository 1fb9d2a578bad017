import logging
from typing import Protocol

from models.payment import PaymentOutcome
from pipeline.failure_injector import FailureInjector

logger = logging.getLogger(__name__)

CHARGE_ID_BOUND = 100000


class PaymentGateway(Protocol):
    async def charge(self, order_id: str, amount: float) -> PaymentOutcome:
        ...


class FakeCardGateway:
    """Card gateway whose declines are decided by a FailureInjector.

    Declines come back as unsuccessful PaymentOutcomes, not exceptions.
    """

    def __init__(self, injector: FailureInjector):
        self._injector = injector

    @property
    def attempt_count(self) -> int:
        return self._injector.attempts

    async def charge(self, order_id: str, amount: float) -> PaymentOutcome:
        declined = self._injector.should_fail()
        attempt = self._injector.attempts
        logger.info(f"[Payment] Attempt #{attempt} for order {order_id}, amount: ${amount:.2f}")

        if declined:
            return PaymentOutcome.declined(f"Card declined (simulated failure #{attempt})")

        charge_id = f"CHG-{self._injector.random.randrange(CHARGE_ID_BOUND)}"
        return PaymentOutcome(
            success=True,
            charge_reference=charge_id,
            message=f"Charge successful on attempt #{attempt}",
            amount_charged=amount,
        )
