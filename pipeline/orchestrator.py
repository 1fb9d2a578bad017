import asyncio
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional, Protocol, Tuple

from models.confirmation import ConfirmationMessage
from models.order import Order, OrderStatus
from models.outcome import OrderOutcome
from models.payment import PaymentOutcome
from models.risk import RiskAssessment, RiskLevel
from pipeline.errors import ConfigurationError
from pipeline.result import Failure, StepResult, Success
from pipeline.retry import Exhausted, RetryPolicy
from pipeline.steps import CONFIRMATION, PAYMENT, RISK, ConfirmationStep

Sleep = Callable[[float], Awaitable[None]]


class PipelineState(str, Enum):
    START = "START"
    RISK_PENDING = "RISK_PENDING"
    RISK_REJECTED = "RISK_REJECTED"
    RISK_APPROVED = "RISK_APPROVED"
    PAYMENT_PENDING = "PAYMENT_PENDING"
    PAYMENT_REJECTED = "PAYMENT_REJECTED"
    PAYMENT_APPROVED = "PAYMENT_APPROVED"
    CANCELLED = "CANCELLED"
    CONFIRMING = "CONFIRMING"
    DONE = "DONE"


_TRANSITIONS = {
    PipelineState.START: {PipelineState.RISK_PENDING, PipelineState.CANCELLED},
    PipelineState.RISK_PENDING: {PipelineState.RISK_REJECTED, PipelineState.RISK_APPROVED, PipelineState.CANCELLED},
    PipelineState.RISK_APPROVED: {PipelineState.PAYMENT_PENDING, PipelineState.CANCELLED},
    PipelineState.PAYMENT_PENDING: {
        PipelineState.PAYMENT_REJECTED,
        PipelineState.PAYMENT_APPROVED,
        PipelineState.CANCELLED,
    },
    PipelineState.RISK_REJECTED: {PipelineState.CONFIRMING},
    PipelineState.PAYMENT_REJECTED: {PipelineState.CONFIRMING},
    PipelineState.PAYMENT_APPROVED: {PipelineState.CONFIRMING},
    PipelineState.CANCELLED: {PipelineState.CONFIRMING},
    PipelineState.CONFIRMING: {PipelineState.DONE},
    PipelineState.DONE: set(),
}


@dataclass(frozen=True)
class StepConfig:
    retry_policy: RetryPolicy
    timeout: timedelta

    def __post_init__(self):
        if self.timeout <= timedelta(0):
            raise ConfigurationError(f"step timeout must be positive, got {self.timeout}")


@dataclass(frozen=True)
class PipelineConfig:
    """Retry policy and per-attempt timeout for each step."""

    risk: StepConfig = field(
        default_factory=lambda: StepConfig(
            RetryPolicy(
                maximum_attempts=3,
                initial_interval=timedelta(seconds=1),
                maximum_interval=timedelta(seconds=10),
                backoff_coefficient=2.0,
            ),
            timeout=timedelta(seconds=10),
        )
    )
    # Exponential backoff: 1s, 2s, 4s, 5s
    payment: StepConfig = field(
        default_factory=lambda: StepConfig(
            RetryPolicy(
                maximum_attempts=5,
                initial_interval=timedelta(seconds=1),
                maximum_interval=timedelta(seconds=5),
                backoff_coefficient=2.0,
            ),
            timeout=timedelta(seconds=30),
        )
    )
    confirmation: StepConfig = field(
        default_factory=lambda: StepConfig(
            RetryPolicy(
                maximum_attempts=2,
                initial_interval=timedelta(seconds=1),
                maximum_interval=timedelta(seconds=1),
                backoff_coefficient=1.0,
            ),
            timeout=timedelta(seconds=30),
        )
    )

    @classmethod
    def default(cls) -> "PipelineConfig":
        return cls()


class StepRunner(Protocol):
    """Runs one attempt of a step. Hosts decide where the attempt executes.

    Implementations must turn an attempt that overruns `timeout` into a
    Failure. They may raise only for unrecoverable errors such as
    CollaboratorUnavailable.
    """

    async def assess_risk(self, order: Order, attempt: int, timeout: timedelta) -> StepResult[RiskAssessment]:
        ...

    async def capture_payment(self, order: Order, attempt: int, timeout: timedelta) -> StepResult[PaymentOutcome]:
        ...

    async def confirm(self, outcome: OrderOutcome, attempt: int, timeout: timedelta) -> StepResult[ConfirmationMessage]:
        ...


class _Cancelled(Exception):
    pass


class PipelineOrchestrator:
    """Drives one order through risk assessment, payment capture and confirmation.

    The orchestrator alone decides when the pipeline stops. Each step is
    attempted, and on Failure its RetryPolicy either yields a backoff delay
    (the orchestrator suspends via `sleep`, then retries) or is exhausted
    (the order moves to the matching rejection). Every terminal state,
    cancellation included, passes through CONFIRMING so the returned
    outcome always carries a confirmation message.

    An instance serves exactly one order. Nothing is shared between
    instances, so independent orders can run concurrently.
    """

    def __init__(
        self,
        runner: StepRunner,
        config: Optional[PipelineConfig] = None,
        sleep: Optional[Sleep] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._runner = runner
        self._config = config or PipelineConfig.default()
        self._sleep = sleep or asyncio.sleep
        self._logger = logger or logging.getLogger(__name__)
        self._state = PipelineState.START
        self._history: List[PipelineState] = [PipelineState.START]
        self._attempts: Dict[str, int] = {}
        self._cancel_event = asyncio.Event()
        self._cancel_reason: Optional[str] = None
        self._outcome: Optional[OrderOutcome] = None

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def history(self) -> List[PipelineState]:
        return list(self._history)

    @property
    def attempts(self) -> Dict[str, int]:
        return dict(self._attempts)

    @property
    def outcome(self) -> Optional[OrderOutcome]:
        """Latest outcome snapshot, for status queries while the run is in flight."""
        return self._outcome

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_event.is_set()

    def cancel(self, reason: str = "cancelled by caller"):
        """Stop the run before its next step or retry. No-op once confirming."""
        if self.cancel_requested:
            return
        self._cancel_reason = reason
        self._cancel_event.set()
        self._logger.info(f"Cancellation requested in state {self._state.value}: {reason}")

    async def run(self, order: Order) -> OrderOutcome:
        if self._state != PipelineState.START:
            raise RuntimeError(f"orchestrator already used (state {self._state.value}); create one per order")

        self._logger.info(f"=== Processing order {order.id} ===")
        self._outcome = OrderOutcome.started(order.id)

        try:
            self._transition(PipelineState.RISK_PENDING)
            assessment = await self._assess_risk(order)
            self._outcome = self._outcome.with_risk(assessment)

            if not assessment.approved:
                self._transition(PipelineState.RISK_REJECTED)
                self._logger.warning(f"Order {order.id} rejected by risk assessment: {assessment.reason}")
                self._outcome = self._outcome.resolve(OrderStatus.REJECTED_RISK)
            else:
                self._transition(PipelineState.RISK_APPROVED)
                self._transition(PipelineState.PAYMENT_PENDING)
                payment = await self._capture_payment(order)
                self._outcome = self._outcome.with_payment(payment)
                if payment.success:
                    self._transition(PipelineState.PAYMENT_APPROVED)
                    self._outcome = self._outcome.resolve(OrderStatus.APPROVED)
                else:
                    self._transition(PipelineState.PAYMENT_REJECTED)
                    self._logger.warning(f"Order {order.id} rejected after payment failure: {payment.message}")
                    self._outcome = self._outcome.resolve(OrderStatus.REJECTED_PAYMENT)
        except _Cancelled:
            self._transition(PipelineState.CANCELLED)
            self._logger.warning(f"Order {order.id} cancelled: {self._cancel_reason}")
            self._outcome = self._with_attempts(self._outcome).resolve(OrderStatus.CANCELLED)

        self._outcome = self._with_attempts(self._outcome)
        outcome = await self._confirm(self._outcome)
        self._logger.info(f"Order {order.id} finished with status {outcome.status.value}")
        return outcome

    async def _assess_risk(self, order: Order) -> RiskAssessment:
        result, attempts = await self._run_with_retry(
            RISK, self._config.risk, lambda n, timeout: self._runner.assess_risk(order, n, timeout)
        )
        if isinstance(result, Success):
            return result.value
        return RiskAssessment(
            approved=False,
            risk_score=1.0,
            reason=f"Risk assessment failed after {attempts} attempts: {result.reason}",
            risk_level=RiskLevel.HIGH,
        )

    async def _capture_payment(self, order: Order) -> PaymentOutcome:
        result, attempts = await self._run_with_retry(
            PAYMENT, self._config.payment, lambda n, timeout: self._runner.capture_payment(order, n, timeout)
        )
        if isinstance(result, Success):
            return result.value
        return PaymentOutcome.declined(f"Payment failed after {attempts} attempts: {result.reason}")

    async def _confirm(self, outcome: OrderOutcome) -> OrderOutcome:
        self._transition(PipelineState.CONFIRMING)
        result, attempts = await self._run_with_retry(
            CONFIRMATION,
            self._config.confirmation,
            lambda n, timeout: self._runner.confirm(outcome, n, timeout),
            cancellable=False,
        )
        message = result.value if isinstance(result, Success) else ConfirmationStep.fallback(outcome)
        self._outcome = outcome.with_attempts(CONFIRMATION, attempts).with_confirmation(message)
        self._transition(PipelineState.DONE)
        return self._outcome

    async def _run_with_retry(
        self,
        step: str,
        step_config: StepConfig,
        attempt_fn: Callable[[int, timedelta], Awaitable[StepResult]],
        cancellable: bool = True,
    ) -> Tuple[StepResult, int]:
        policy = step_config.retry_policy
        attempt = 0
        while True:
            if cancellable and self.cancel_requested:
                raise _Cancelled()
            attempt += 1
            self._attempts[step] = attempt

            result = await self._until_cancelled(attempt_fn(attempt, step_config.timeout), cancellable)
            if isinstance(result, Success):
                if attempt > 1:
                    self._logger.info(f"Step '{step}' succeeded on attempt {attempt}")
                return result, attempt

            delay = policy.next_delay(attempt)
            if delay is Exhausted:
                self._logger.error(f"Step '{step}' exhausted after {attempt} attempts: {result.reason}")
                return result, attempt

            self._logger.warning(
                f"Step '{step}' attempt {attempt} failed: {result.reason}. Retrying in {delay.total_seconds():.1f}s"
            )
            await self._until_cancelled(self._sleep(delay.total_seconds()), cancellable)

    async def _until_cancelled(self, awaitable: Awaitable, cancellable: bool):
        """Await `awaitable`, abandoning it if cancellation is requested first."""
        if not cancellable:
            return await awaitable

        work = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._cancel_event.wait())
        try:
            await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            # The caller cancelled the whole run: resolve as cancelled instead of dying mid-step.
            task = asyncio.current_task()
            if task is not None and hasattr(task, "uncancel"):
                task.uncancel()
            self.cancel("run cancelled by caller")

        if work.done() and not work.cancelled():
            waiter.cancel()
            return work.result()

        waiter.cancel()
        work.cancel()
        await asyncio.gather(work, return_exceptions=True)
        raise _Cancelled()

    def _with_attempts(self, outcome: OrderOutcome) -> OrderOutcome:
        for step, count in self._attempts.items():
            if outcome.attempts.get(step) != count:
                outcome = outcome.with_attempts(step, count)
        return outcome

    def _transition(self, new_state: PipelineState):
        if new_state not in _TRANSITIONS[self._state]:
            raise RuntimeError(f"illegal pipeline transition {self._state.value} -> {new_state.value}")
        self._logger.info(f"Pipeline state {self._state.value} -> {new_state.value}")
        self._state = new_state
        self._history.append(new_state)
