from temporalio import activity

from models.order import PipelineRequest
from pipeline.errors import ConfigurationError
from pipeline.failure_injector import FailureInjector
from pipeline.result import result_to_dict
from pipeline.steps import PRICE_PER_ITEM, PaymentCaptureStep
from services.payment_gateway import FakeCardGateway


class PaymentActivities:
    """Temporal binding for the payment capture step.

    Each attempt may run on a different worker, so the failure injector is
    rebuilt per attempt from (seed, attempt) rather than kept here.
    """

    def __init__(self, unit_price: float = PRICE_PER_ITEM):
        if unit_price <= 0:
            raise ConfigurationError(f"unit_price must be positive, got {unit_price}")
        self.unit_price = unit_price

    @activity.defn(name="capture_payment")
    async def capture_payment(self, request_data: dict, attempt: int) -> dict:
        request = PipelineRequest(**request_data)
        order = request.order
        injector = FailureInjector.for_attempt(request.payment_failure_rate, request.seed, attempt)
        step = PaymentCaptureStep(FakeCardGateway(injector), unit_price=self.unit_price)

        activity.logger.info(f"Capturing payment for order {order.id}, amount: ${step.amount_for(order):.2f} (attempt {attempt})")
        result = await step.execute(order)
        if not result.ok:
            activity.logger.warning(f"Payment attempt {attempt} for order {order.id} failed: {result.reason}")
        return result_to_dict(result)

    def activities(self) -> list:
        return [self.capture_payment]
