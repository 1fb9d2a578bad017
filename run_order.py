"""Run one canned order scenario through the pipeline.

In-process by default; with --temporal the order is handed to a running worker.

    python run_order.py low-risk
    python run_order.py payment-flaky --seed 42
    python run_order.py low-risk --payment-fail-rate 0.5 --seed 12345 --temporal
"""
import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from models.order import PipelineRequest
from models.outcome import OrderOutcome
from pipeline.runner import process_order
from pipeline.scenarios import SCENARIOS, build_request, scenario_names
from utils.config import build_collaborators, configure_logging, load_settings

logger = logging.getLogger(__name__)


def failure_rate(value: str) -> float:
    try:
        rate = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"must be a number, got '{value}'")
    if not 0.0 <= rate <= 1.0:
        raise argparse.ArgumentTypeError(f"must be between 0.0 and 1.0, got {rate}")
    return rate


def build_parser() -> argparse.ArgumentParser:
    scenarios_help = "\n".join(f"  {s.name:<16} {s.description}" for s in SCENARIOS.values())
    parser = argparse.ArgumentParser(
        description="Process a canned order through risk assessment, payment capture and confirmation.",
        epilog=f"scenarios:\n{scenarios_help}",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("scenario", choices=scenario_names(), metavar="scenario", help="one of: %(choices)s")
    parser.add_argument("--payment-fail-rate", type=failure_rate, default=None,
                        help="probability of a payment decline (0.0-1.0, default: scenario's rate)")
    parser.add_argument("--seed", type=int, default=None, help="random seed for deterministic replays")
    parser.add_argument("--temporal", action="store_true", help="run through the Temporal worker instead of in-process")
    parser.add_argument("--no-backoff", action="store_true", help="retry immediately instead of sleeping (in-process only)")
    return parser


async def _no_sleep(seconds: float):
    return None


async def run_in_process(request: PipelineRequest, no_backoff: bool = False) -> OrderOutcome:
    risk_scorer, advice_generator = build_collaborators(load_settings())
    return await process_order(
        request,
        risk_scorer=risk_scorer,
        advice_generator=advice_generator,
        sleep=_no_sleep if no_backoff else None,
    )


async def run_on_temporal(request: PipelineRequest) -> OrderOutcome:
    from utils.temporal import get_temporal_client
    from workflows.order_workflow import OrderPipelineWorkflow

    settings = load_settings()
    client = await get_temporal_client(settings)
    result = await client.execute_workflow(
        OrderPipelineWorkflow.run,
        request.model_dump(mode="json"),
        id=f"order-{request.order.id}",
        task_queue=settings.task_queue,
    )
    return OrderOutcome(**result)


def print_outcome(request: PipelineRequest, outcome: OrderOutcome):
    print("\n=== Final Results ===")
    print(f"Order ID: {outcome.order_id}")
    print(f"Status: {outcome.status.value}")
    print(f"Payment Fail Rate: {request.payment_failure_rate * 100:.0f}%")
    if request.seed is not None:
        print(f"Random Seed: {request.seed}")
    for step, count in outcome.attempts.items():
        print(f"Attempts ({step}): {count}")
    if outcome.risk_assessment:
        risk = outcome.risk_assessment
        print(f"Risk: {risk.risk_level.value} ({risk.risk_score:.2f}) - {risk.reason}")
    if outcome.payment_outcome:
        payment = outcome.payment_outcome
        print(f"Payment: {payment.message} (charged ${payment.amount_charged:.2f})")
    if outcome.confirmation:
        print("\n=== Customer Message ===")
        print(f"Subject: {outcome.confirmation.subject}")
        print(f"Tone: {outcome.confirmation.tone.value}")
        print(f"\n{outcome.confirmation.body}")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()

    request = build_request(args.scenario, payment_failure_rate=args.payment_fail_rate, seed=args.seed)
    logger.info(f"Scenario: {args.scenario}, order {request.order.id}")

    if args.temporal:
        outcome = asyncio.run(run_on_temporal(request))
    else:
        outcome = asyncio.run(run_in_process(request, no_backoff=args.no_backoff))

    print_outcome(request, outcome)
    return 0


if __name__ == "__main__":
    sys.exit(main())
