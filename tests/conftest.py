"""
Pytest configuration and shared fixtures for the order pipeline tests.
"""

import sys
from datetime import timedelta
from pathlib import Path

import pytest

# Project root on sys.path so the top-level packages import without installation
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

from models.order import LineItem, Order, PipelineRequest  # noqa: E402
from pipeline.orchestrator import PipelineConfig, StepConfig  # noqa: E402
from pipeline.retry import RetryPolicy  # noqa: E402


class SleepRecorder:
    """Stands in for asyncio.sleep: records requested delays, returns at once."""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds: float):
        self.calls.append(seconds)


def make_order(order_id: str = "ORDER-1001", *quantities: int) -> Order:
    quantities = quantities or (2, 1)
    return Order(
        id=order_id,
        items=[LineItem(item_code=f"SKU-{i}", quantity=q) for i, q in enumerate(quantities, start=1)],
    )


def make_request(order_id: str = "ORDER-1001", *quantities: int, failure_rate: float = 0.0, seed=None) -> PipelineRequest:
    return PipelineRequest(order=make_order(order_id, *quantities), payment_failure_rate=failure_rate, seed=seed)


def fast_config(payment_attempts: int = 5, risk_attempts: int = 3, timeout: float = 5.0) -> PipelineConfig:
    """Default policies with short timeouts, for tests that exercise timeouts."""
    defaults = PipelineConfig.default()
    return PipelineConfig(
        risk=StepConfig(
            RetryPolicy(
                maximum_attempts=risk_attempts,
                initial_interval=defaults.risk.retry_policy.initial_interval,
                maximum_interval=defaults.risk.retry_policy.maximum_interval,
                backoff_coefficient=defaults.risk.retry_policy.backoff_coefficient,
            ),
            timeout=timedelta(seconds=timeout),
        ),
        payment=StepConfig(
            RetryPolicy(
                maximum_attempts=payment_attempts,
                initial_interval=defaults.payment.retry_policy.initial_interval,
                maximum_interval=defaults.payment.retry_policy.maximum_interval,
                backoff_coefficient=defaults.payment.retry_policy.backoff_coefficient,
            ),
            timeout=timedelta(seconds=timeout),
        ),
        confirmation=StepConfig(defaults.confirmation.retry_policy, timeout=timedelta(seconds=timeout)),
    )


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


@pytest.fixture
def order():
    return make_order()
