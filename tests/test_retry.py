from datetime import timedelta

import pytest

from pipeline.errors import ConfigurationError
from pipeline.retry import Exhausted, RetryPolicy


POLICIES = [
    RetryPolicy(maximum_attempts=1, initial_interval=timedelta(seconds=1), maximum_interval=timedelta(seconds=1), backoff_coefficient=1.0),
    RetryPolicy(maximum_attempts=3, initial_interval=timedelta(seconds=1), maximum_interval=timedelta(seconds=10), backoff_coefficient=2.0),
    RetryPolicy(maximum_attempts=5, initial_interval=timedelta(seconds=1), maximum_interval=timedelta(seconds=5), backoff_coefficient=2.0),
    RetryPolicy(maximum_attempts=8, initial_interval=timedelta(milliseconds=250), maximum_interval=timedelta(seconds=3), backoff_coefficient=3.5),
    RetryPolicy(maximum_attempts=4, initial_interval=timedelta(seconds=2), maximum_interval=timedelta(seconds=2), backoff_coefficient=1.0),
]


@pytest.mark.parametrize("policy", POLICIES)
def test_attempts_before_maximum_are_never_exhausted(policy):
    for attempt in range(1, policy.maximum_attempts):
        assert policy.next_delay(attempt) is not Exhausted
    assert policy.next_delay(policy.maximum_attempts) is Exhausted
    assert policy.next_delay(policy.maximum_attempts + 1) is Exhausted


@pytest.mark.parametrize("policy", POLICIES)
def test_backoff_is_non_decreasing_and_capped(policy):
    delays = policy.delays()
    assert delays == sorted(delays)
    assert all(d <= policy.maximum_interval for d in delays)


def test_payment_policy_backoff_sequence():
    policy = RetryPolicy(
        maximum_attempts=5,
        initial_interval=timedelta(seconds=1),
        maximum_interval=timedelta(seconds=5),
        backoff_coefficient=2.0,
    )
    assert [d.total_seconds() for d in policy.delays()] == [1.0, 2.0, 4.0, 5.0]


def test_coefficient_one_gives_constant_backoff():
    policy = RetryPolicy(maximum_attempts=4, initial_interval=timedelta(seconds=3), maximum_interval=timedelta(seconds=30), backoff_coefficient=1.0)
    assert policy.delays() == [timedelta(seconds=3)] * 3


def test_single_attempt_policy_never_retries():
    policy = RetryPolicy.no_retry()
    assert policy.next_delay(1) is Exhausted
    assert policy.delays() == []


def test_exhausted_is_falsy_singleton():
    assert not Exhausted
    assert repr(Exhausted) == "Exhausted"


def test_huge_attempt_counts_stay_capped():
    policy = RetryPolicy(maximum_attempts=10_000, initial_interval=timedelta(seconds=1), maximum_interval=timedelta(minutes=1), backoff_coefficient=10.0)
    assert policy.next_delay(5_000) == timedelta(minutes=1)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"maximum_attempts": 0},
        {"initial_interval": timedelta(0)},
        {"initial_interval": timedelta(seconds=-1)},
        {"backoff_coefficient": 0.5},
        {"initial_interval": timedelta(seconds=20), "maximum_interval": timedelta(seconds=10)},
    ],
)
def test_invalid_policies_raise_configuration_error(kwargs):
    with pytest.raises(ConfigurationError):
        RetryPolicy(**kwargs)


def test_attempt_numbers_start_at_one():
    with pytest.raises(ValueError):
        RetryPolicy().next_delay(0)
