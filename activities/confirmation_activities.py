from temporalio import activity

from models.outcome import OrderOutcome
from pipeline.result import result_to_dict
from pipeline.steps import ConfirmationStep
from services.advice import AdviceGenerator


class ConfirmationActivities:
    """Temporal binding for the confirmation message step."""

    def __init__(self, generator: AdviceGenerator):
        self._step = ConfirmationStep(generator)

    @activity.defn(name="generate_confirmation")
    async def generate_confirmation(self, outcome_data: dict) -> dict:
        outcome = OrderOutcome(**outcome_data)
        activity.logger.info(f"Generating confirmation message for order {outcome.order_id} ({outcome.status})")
        result = await self._step.execute(outcome)
        return result_to_dict(result)

    def activities(self) -> list:
        return [self.generate_confirmation]
