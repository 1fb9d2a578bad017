from temporalio import activity
from temporalio.exceptions import ApplicationError

from models.order import Order
from pipeline.errors import CollaboratorUnavailable
from pipeline.result import result_to_dict
from pipeline.steps import RiskAssessmentStep
from services.risk_scoring import RiskScorer


class RiskActivities:
    """Temporal binding for the risk assessment step."""

    def __init__(self, scorer: RiskScorer):
        self._step = RiskAssessmentStep(scorer)

    @activity.defn(name="assess_risk")
    async def assess_risk(self, order_data: dict, attempt: int) -> dict:
        order = Order(**order_data)
        activity.logger.info(f"Assessing risk for order {order.id} (attempt {attempt})")
        try:
            result = await self._step.execute(order)
        except CollaboratorUnavailable as e:
            activity.logger.error(f"Risk scoring unavailable for order {order.id}: {e}")
            raise ApplicationError(str(e), type="CollaboratorUnavailable", non_retryable=True) from e
        return result_to_dict(result)

    def activities(self) -> list:
        return [self.assess_risk]
