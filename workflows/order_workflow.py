from temporalio import workflow
from temporalio.common import RetryPolicy as TemporalRetryPolicy
from temporalio.exceptions import ActivityError, ApplicationError, TimeoutError
from datetime import timedelta
from typing import Optional

with workflow.unsafe.imports_passed_through():
    from activities.confirmation_activities import ConfirmationActivities
    from activities.payment_activities import PaymentActivities
    from activities.risk_activities import RiskActivities
    from models.confirmation import ConfirmationMessage
    from models.order import Order, PipelineRequest
    from models.outcome import OrderOutcome
    from models.payment import PaymentOutcome
    from models.risk import RiskAssessment
    from pipeline.orchestrator import PipelineConfig, PipelineOrchestrator
    from pipeline.result import Failure, StepResult, result_from_dict

# The orchestrator's RetryPolicy owns retries, so each activity call is a single attempt.
SINGLE_ATTEMPT = TemporalRetryPolicy(maximum_attempts=1)


class ActivityStepRunner:
    """Runs each step attempt as a Temporal activity."""

    def __init__(self, request: PipelineRequest):
        self._request = request

    async def _attempt(self, step_name: str, activity_method, args: list, timeout: timedelta, parse) -> StepResult:
        try:
            data = await workflow.execute_activity_method(
                activity_method,
                args=args,
                start_to_close_timeout=timeout,
                retry_policy=SINGLE_ATTEMPT,
            )
        except ActivityError as e:
            if isinstance(e.cause, ApplicationError) and e.cause.non_retryable:
                # Unrecoverable (e.g. missing credentials): fail the workflow
                raise
            if isinstance(e.cause, TimeoutError):
                return Failure(f"{step_name} attempt timed out after {timeout.total_seconds():.1f}s")
            return Failure(f"{step_name} attempt failed: {e.cause or e}")
        return result_from_dict(data, parse)

    async def assess_risk(self, order: Order, attempt: int, timeout: timedelta) -> StepResult[RiskAssessment]:
        return await self._attempt(
            "risk",
            RiskActivities.assess_risk,
            [order.model_dump(mode="json"), attempt],
            timeout,
            lambda value: RiskAssessment(**value),
        )

    async def capture_payment(self, order: Order, attempt: int, timeout: timedelta) -> StepResult[PaymentOutcome]:
        return await self._attempt(
            "payment",
            PaymentActivities.capture_payment,
            [self._request.model_dump(mode="json"), attempt],
            timeout,
            lambda value: PaymentOutcome(**value),
        )

    async def confirm(self, outcome: OrderOutcome, attempt: int, timeout: timedelta) -> StepResult[ConfirmationMessage]:
        return await self._attempt(
            "confirmation",
            ConfirmationActivities.generate_confirmation,
            [outcome.to_dict()],
            timeout,
            lambda value: ConfirmationMessage(**value),
        )


@workflow.defn(name="OrderPipelineWorkflow")
class OrderPipelineWorkflow:
    def __init__(self):
        self._request: PipelineRequest | None = None
        self._orchestrator: PipelineOrchestrator | None = None
        self._pending_cancel: Optional[str] = None

    @workflow.run
    async def run(self, request_input: dict) -> dict:
        self._request = PipelineRequest(**request_input)
        order = self._request.order
        workflow.logger.info(
            f"Starting OrderPipelineWorkflow for order: {order.id} "
            f"(payment failure rate {self._request.payment_failure_rate}, seed {self._request.seed})"
        )

        self._orchestrator = PipelineOrchestrator(
            ActivityStepRunner(self._request),
            config=PipelineConfig.default(),
            logger=workflow.logger,
        )
        if self._pending_cancel is not None:
            self._orchestrator.cancel(self._pending_cancel)

        outcome = await self._orchestrator.run(order)
        workflow.logger.info(f"Workflow finished for order {order.id} with final status {outcome.status.value}")
        return outcome.to_dict()

    @workflow.query
    def get_status(self) -> str:
        """Returns the current pipeline state."""
        if not self._orchestrator:
            return "UNKNOWN"
        return self._orchestrator.state.value

    @workflow.query
    def get_details(self) -> dict | None:
        """Returns the latest outcome snapshot."""
        if not self._orchestrator or not self._orchestrator.outcome:
            return None
        return self._orchestrator.outcome.to_dict()

    @workflow.signal
    async def cancel_order(self, reason: str = "cancelled by customer"):
        """Signal handler to request cancellation."""
        if self._orchestrator is None:
            workflow.logger.info(f"Cancellation received before start: {reason}")
            self._pending_cancel = reason
            return
        self._orchestrator.cancel(reason)
