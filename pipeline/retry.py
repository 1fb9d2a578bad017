from dataclasses import dataclass
from datetime import timedelta
from typing import Union

from pipeline.errors import ConfigurationError


class _Exhausted:
    """Sentinel returned by RetryPolicy.next_delay when no attempts are left."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "Exhausted"

    def __bool__(self):
        return False


Exhausted = _Exhausted()


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff policy applied by the orchestrator to a failing step.

    Field names follow temporalio.common.RetryPolicy so policies read the same
    whichever side of the host boundary they are declared on.
    """

    maximum_attempts: int = 3
    initial_interval: timedelta = timedelta(seconds=1)
    maximum_interval: timedelta = timedelta(seconds=10)
    backoff_coefficient: float = 2.0

    def __post_init__(self):
        if self.maximum_attempts < 1:
            raise ConfigurationError(f"maximum_attempts must be >= 1, got {self.maximum_attempts}")
        if self.initial_interval <= timedelta(0):
            raise ConfigurationError(f"initial_interval must be positive, got {self.initial_interval}")
        if self.maximum_interval < self.initial_interval:
            raise ConfigurationError(
                f"maximum_interval ({self.maximum_interval}) must be >= initial_interval ({self.initial_interval})"
            )
        if self.backoff_coefficient < 1.0:
            raise ConfigurationError(f"backoff_coefficient must be >= 1.0, got {self.backoff_coefficient}")

    def next_delay(self, attempt: int) -> Union[timedelta, _Exhausted]:
        """Delay before retrying after `attempt` (1-indexed) failed, or Exhausted."""
        if attempt < 1:
            raise ValueError(f"attempt numbers start at 1, got {attempt}")
        if attempt >= self.maximum_attempts:
            return Exhausted
        cap = self.maximum_interval.total_seconds()
        try:
            seconds = self.initial_interval.total_seconds() * self.backoff_coefficient ** (attempt - 1)
        except OverflowError:
            seconds = cap
        return timedelta(seconds=min(seconds, cap))

    def delays(self):
        """All delays this policy can produce, in order."""
        return [self.next_delay(n) for n in range(1, self.maximum_attempts)]

    @classmethod
    def no_retry(cls) -> "RetryPolicy":
        return cls(maximum_attempts=1)
