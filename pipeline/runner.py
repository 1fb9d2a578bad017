import asyncio
import logging
from datetime import timedelta
from typing import Optional

from models.confirmation import ConfirmationMessage
from models.order import Order, PipelineRequest
from models.outcome import OrderOutcome
from models.payment import PaymentOutcome
from models.risk import RiskAssessment
from pipeline.failure_injector import FailureInjector
from pipeline.orchestrator import PipelineConfig, PipelineOrchestrator, Sleep
from pipeline.result import Failure, StepResult
from pipeline.steps import ConfirmationStep, PaymentCaptureStep, RiskAssessmentStep
from services.advice import AdviceGenerator, TemplateAdviceGenerator
from services.payment_gateway import FakeCardGateway
from services.risk_scoring import RiskScorer, RuleBasedRiskScorer

logger = logging.getLogger(__name__)


class LocalStepRunner:
    """Runs step attempts in the current event loop, bounded by asyncio.wait_for."""

    def __init__(
        self,
        risk_step: RiskAssessmentStep,
        payment_step: PaymentCaptureStep,
        confirmation_step: ConfirmationStep,
    ):
        self.risk_step = risk_step
        self.payment_step = payment_step
        self.confirmation_step = confirmation_step

    async def _bounded(self, step_name: str, coro, timeout: timedelta) -> StepResult:
        try:
            return await asyncio.wait_for(coro, timeout=timeout.total_seconds())
        except asyncio.TimeoutError:
            logger.warning(f"Step '{step_name}' attempt timed out after {timeout.total_seconds():.1f}s")
            return Failure(f"{step_name} attempt timed out after {timeout.total_seconds():.1f}s")

    async def assess_risk(self, order: Order, attempt: int, timeout: timedelta) -> StepResult[RiskAssessment]:
        return await self._bounded(self.risk_step.name, self.risk_step.execute(order), timeout)

    async def capture_payment(self, order: Order, attempt: int, timeout: timedelta) -> StepResult[PaymentOutcome]:
        return await self._bounded(self.payment_step.name, self.payment_step.execute(order), timeout)

    async def confirm(self, outcome: OrderOutcome, attempt: int, timeout: timedelta) -> StepResult[ConfirmationMessage]:
        return await self._bounded(self.confirmation_step.name, self.confirmation_step.execute(outcome), timeout)


def build_orchestrator(
    request: PipelineRequest,
    risk_scorer: Optional[RiskScorer] = None,
    advice_generator: Optional[AdviceGenerator] = None,
    config: Optional[PipelineConfig] = None,
    sleep: Optional[Sleep] = None,
    risk_injector: Optional[FailureInjector] = None,
) -> PipelineOrchestrator:
    """Wire a fresh orchestrator, steps and failure injector for one order run."""
    payment_injector = FailureInjector(request.payment_failure_rate, seed=request.seed)
    runner = LocalStepRunner(
        RiskAssessmentStep(risk_scorer or RuleBasedRiskScorer(), injector=risk_injector),
        PaymentCaptureStep(FakeCardGateway(payment_injector)),
        ConfirmationStep(advice_generator or TemplateAdviceGenerator()),
    )
    return PipelineOrchestrator(runner, config=config, sleep=sleep)


async def process_order(request: PipelineRequest, **kwargs) -> OrderOutcome:
    """Run one order through the pipeline in-process and return its outcome."""
    orchestrator = build_orchestrator(request, **kwargs)
    return await orchestrator.run(request.order)
