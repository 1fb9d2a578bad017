import logging
import random
from typing import Optional

from pipeline.errors import ConfigurationError

logger = logging.getLogger(__name__)


class FailureInjector:
    """Seed-controlled stand-in for an unreliable external dependency.

    Each instance owns its random source and attempt counter. Create one per
    order run; instances are never shared between orders.

    With an explicit `seed` (or a caller-supplied `rng`) the sequence of
    `should_fail()` results is reproducible. Without either, the source is
    seeded from system entropy.
    """

    def __init__(self, failure_rate: float = 0.0, seed: Optional[int] = None, rng: Optional[random.Random] = None):
        if not 0.0 <= failure_rate <= 1.0:
            raise ConfigurationError(f"failure_rate must be between 0.0 and 1.0, got {failure_rate}")
        if seed is not None and rng is not None:
            raise ConfigurationError("pass either seed or rng, not both")
        self._failure_rate = failure_rate
        self._random = rng if rng is not None else random.Random(seed)
        self._attempts = 0

    @classmethod
    def for_attempt(cls, failure_rate: float, seed: Optional[int], attempt: int) -> "FailureInjector":
        """Injector for one attempt of a retried call made in a fresh process.

        Durable hosts may run each attempt on a different worker, so the
        sequence cannot live in one instance. The source is reseeded and
        advanced past the draws of the earlier attempts, which all failed
        (a retry only follows a failure). A seeded run therefore sees the
        same outcomes as one long-lived injector with the same seed.
        """
        injector = cls(failure_rate, seed=seed)
        if seed is not None:
            for _ in range(attempt - 1):
                injector._random.random()
        injector._attempts = attempt - 1
        return injector

    @property
    def failure_rate(self) -> float:
        return self._failure_rate

    @property
    def attempts(self) -> int:
        """Number of times should_fail() has been called."""
        return self._attempts

    @property
    def random(self) -> random.Random:
        """The underlying source, for callers that need extra deterministic draws."""
        return self._random

    def should_fail(self) -> bool:
        self._attempts += 1
        # Always draw, so the sequence does not depend on the rate.
        failed = self._random.random() < self._failure_rate
        logger.debug(f"Injected outcome for attempt #{self._attempts}: {'fail' if failed else 'pass'}")
        return failed
