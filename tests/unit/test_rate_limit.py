from datetime import UTC, datetime

import pytest

from src.adapters.clock import FixedClock
from src.adapters.rate_limit import InMemoryRateLimiter


@pytest.fixture
def clock():
    return FixedClock(datetime(2025, 1, 1, 12, 0, tzinfo=UTC))


@pytest.fixture
def limiter(clock):
    return InMemoryRateLimiter(clock)


def test_check_does_not_record(limiter):
    assert limiter.check_rate_limit("ip", limit=1, window_seconds=60) == (True, 1)
    assert limiter.check_rate_limit("ip", limit=1, window_seconds=60) == (True, 1)


def test_limit_reached(limiter):
    for _ in range(3):
        limiter.record_attempt("ip")

    assert limiter.check_rate_limit("ip", limit=3, window_seconds=60) == (False, 0)
    assert limiter.check_rate_limit("other", limit=3, window_seconds=60) == (True, 3)


def test_window_slides(limiter, clock):
    limiter.record_attempt("ip")
    clock.advance(seconds=30)
    limiter.record_attempt("ip")

    assert limiter.check_rate_limit("ip", limit=2, window_seconds=60)[0] is False

    clock.advance(seconds=31)
    assert limiter.check_rate_limit("ip", limit=2, window_seconds=60) == (True, 1)


def test_zero_limit_blocks(limiter):
    assert limiter.check_rate_limit("ip", limit=0, window_seconds=60) == (False, 0)


def test_reset(limiter):
    limiter.record_attempt("ip")
    limiter.reset()

    assert limiter.check_rate_limit("ip", limit=1, window_seconds=60) == (True, 1)
