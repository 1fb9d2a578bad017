import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from models.order import LineItem, Order, PipelineRequest
from pipeline.errors import ConfigurationError


@dataclass(frozen=True)
class Scenario:
    name: str
    description: str
    order_id_prefix: str
    items: Tuple[Tuple[str, int], ...]
    payment_failure_rate: float = 0.0


SCENARIOS: Dict[str, Scenario] = {
    s.name: s
    for s in [
        Scenario("low-risk", "Normal order with low fraud risk", "ORDER", (("SKU-123", 2), ("SKU-789", 1))),
        Scenario("high-risk", "Large quantity order that gets flagged", "ORDER", (("SKU-123", 50), ("SKU-456", 75))),
        Scenario("fraud-test", "Order with intentional fraud indicators", "FRAUD-TEST", (("SKU-999", 1),)),
        Scenario(
            "payment-flaky",
            "Normal order with flaky payment (70% failure rate)",
            "ORDER",
            (("SKU-123", 2), ("SKU-789", 1)),
            payment_failure_rate=0.7,
        ),
        Scenario(
            "payment-broken",
            "Normal order with broken payment (100% failure rate)",
            "ORDER",
            (("SKU-123", 2), ("SKU-789", 1)),
            payment_failure_rate=1.0,
        ),
    ]
}


def scenario_names() -> List[str]:
    return list(SCENARIOS)


def build_request(
    name: str,
    payment_failure_rate: Optional[float] = None,
    seed: Optional[int] = None,
    order_id: Optional[str] = None,
) -> PipelineRequest:
    """Canned order plus failure-injection settings for a named scenario."""
    try:
        scenario = SCENARIOS[name]
    except KeyError:
        raise ConfigurationError(f"Unknown scenario '{name}'. Must be one of: {', '.join(SCENARIOS)}") from None

    rate = scenario.payment_failure_rate if payment_failure_rate is None else payment_failure_rate
    if not 0.0 <= rate <= 1.0:
        raise ConfigurationError(f"payment failure rate must be between 0.0 and 1.0, got {rate}")

    order = Order(
        id=order_id or f"{scenario.order_id_prefix}-{int(time.time() * 1000)}",
        items=[LineItem(item_code=code, quantity=qty) for code, qty in scenario.items],
    )
    return PipelineRequest(order=order, payment_failure_rate=rate, seed=seed)
