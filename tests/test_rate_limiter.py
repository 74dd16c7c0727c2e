"""
Pure unit tests for realitycheck/core/rate_limiter.py.

Time is frozen with unittest.mock.patch to test interval refills without sleeping.
"""

from unittest.mock import patch

import pytest

from realitycheck.core.rate_limiter import (
    RateLimiter,
    TieredRateLimiter,
    budget_for,
    build_tier_limiters,
)
from realitycheck.schemas.detection import ContentType, QualityTier


@pytest.fixture
def frozen_time():
    with patch("realitycheck.core.rate_limiter.time") as mock_time:
        mock_time.time.return_value = 1000.0
        yield mock_time


# ---------------------------------------------------------------------------
# Single bucket
# ---------------------------------------------------------------------------


def test_consume_until_empty(frozen_time):
    limiter = RateLimiter(max_tokens=3, refill_interval_sec=60)
    assert limiter.consume() is True
    assert limiter.consume() is True
    assert limiter.consume() is True
    assert limiter.consume() is False
    assert limiter.remaining_tokens == 0


def test_failed_consume_takes_nothing(frozen_time):
    limiter = RateLimiter(max_tokens=2, refill_interval_sec=60)
    assert limiter.consume(3) is False
    assert limiter.remaining_tokens == 2


def test_can_consume_does_not_take_tokens(frozen_time):
    limiter = RateLimiter(max_tokens=1, refill_interval_sec=60)
    assert limiter.can_consume() is True
    assert limiter.can_consume() is True
    assert limiter.remaining_tokens == 1


def test_no_refill_before_interval(frozen_time):
    limiter = RateLimiter(max_tokens=2, refill_interval_sec=60)
    limiter.consume()
    limiter.consume()

    frozen_time.time.return_value = 1059.0
    assert limiter.remaining_tokens == 0


def test_full_interval_refills_to_cap(frozen_time):
    limiter = RateLimiter(max_tokens=2, refill_interval_sec=60)
    limiter.consume()
    limiter.consume()

    frozen_time.time.return_value = 1060.0
    assert limiter.remaining_tokens == 2

    # Several intervals never push past the cap
    frozen_time.time.return_value = 1500.0
    assert limiter.remaining_tokens == 2


def test_return_token_restores_and_caps(frozen_time):
    limiter = RateLimiter(max_tokens=2, refill_interval_sec=60)
    limiter.consume()
    limiter.return_token()
    assert limiter.remaining_tokens == 2

    limiter.return_token()
    assert limiter.remaining_tokens == 2


def test_consume_and_refund_conserve_tokens(frozen_time):
    limiter = RateLimiter(max_tokens=5, refill_interval_sec=60)
    for _ in range(4):
        limiter.consume()
    for _ in range(2):
        limiter.return_token()
    assert limiter.remaining_tokens == 3


# ---------------------------------------------------------------------------
# Tier sets
# ---------------------------------------------------------------------------


def test_tiers_are_independent(frozen_time):
    tiered = TieredRateLimiter({"low": 1, "medium": 2, "high": 3}, refill_interval_sec=60)
    assert tiered.for_tier(QualityTier.LOW).consume() is True
    assert tiered.for_tier(QualityTier.LOW).consume() is False
    assert tiered.for_tier(QualityTier.HIGH).remaining_tokens == 3


def test_for_tier_accepts_string_value(frozen_time):
    tiered = TieredRateLimiter({"low": 1, "medium": 2, "high": 3})
    assert tiered.for_tier("medium").max_tokens == 2


def test_budgets_come_from_settings():
    from realitycheck.config import settings

    assert budget_for(ContentType.IMAGE) == settings.image_remote_budget
    assert budget_for(ContentType.VIDEO) == settings.video_remote_budget

    limiters = build_tier_limiters(ContentType.TEXT)
    assert limiters.for_tier(QualityTier.HIGH).max_tokens == settings.text_remote_budget["high"]
