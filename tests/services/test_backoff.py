"""
Unit tests for the retry backoff policy
"""
import pytest

from portwatch.services.backoff import BackoffPolicy


@pytest.mark.parametrize(
    ("attempt", "expected_ms"),
    [(1, 1000), (2, 2000), (3, 4000), (4, 8000), (5, 10000), (12, 10000)],
)
def test_default_waits_double_until_capped(attempt, expected_ms):
    assert BackoffPolicy().wait_ms(attempt) == expected_ms


def test_custom_base_and_cap():
    policy = BackoffPolicy(base_ms=250, cap_ms=600)
    assert [policy.wait_ms(n) for n in (1, 2, 3, 4)] == [250, 500, 600, 600]


@pytest.mark.parametrize("attempt", [0, -1])
def test_first_attempt_has_no_backoff(attempt):
    with pytest.raises(ValueError):
        BackoffPolicy().wait_ms(attempt)
