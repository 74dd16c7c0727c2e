"""
Token-bucket rate limiting for remote escalation.

Buckets refill lazily and in whole intervals: on every read, each full
refill interval that has elapsed since the last refill adds `max_tokens`
tokens (capped at `max_tokens`). There is no background timer.

One bucket exists per (content type, quality tier); `TieredRateLimiter`
holds the three tier buckets of a content type.
"""

import math
import time
import logging
from typing import Dict

from realitycheck.config import settings
from realitycheck.schemas.detection import ContentType, QualityTier

logger = logging.getLogger(__name__)


class RateLimiter:
    def __init__(self, max_tokens: int = 10, refill_interval_sec: float = None):
        self.max_tokens = max_tokens
        self.refill_interval_sec = (
            refill_interval_sec if refill_interval_sec is not None
            else settings.rate_limit_refill_sec
        )
        self._tokens = max_tokens
        self._last_refill = time.time()

    def _refill(self) -> None:
        now = time.time()
        elapsed = now - self._last_refill
        if elapsed >= self.refill_interval_sec:
            intervals = math.floor(elapsed / self.refill_interval_sec)
            self._tokens = min(self.max_tokens, self._tokens + intervals * self.max_tokens)
            self._last_refill = now

    def can_consume(self, n: int = 1) -> bool:
        self._refill()
        return self._tokens >= n

    def consume(self, n: int = 1) -> bool:
        """Take `n` tokens if available. Returns False (and takes nothing) otherwise."""
        self._refill()
        if self._tokens >= n:
            self._tokens -= n
            return True
        logger.debug(f"[RATE] Bucket exhausted ({self._tokens}/{self.max_tokens})")
        return False

    def return_token(self, n: int = 1) -> None:
        """Refund tokens taken for a call that failed; never exceeds the cap."""
        self._tokens = min(self.max_tokens, self._tokens + n)

    @property
    def remaining_tokens(self) -> int:
        self._refill()
        return self._tokens


class TieredRateLimiter:
    """Independent buckets for each quality tier of one content type."""

    def __init__(self, budgets: Dict[str, int], refill_interval_sec: float = None):
        self._limiters: Dict[QualityTier, RateLimiter] = {
            tier: RateLimiter(budgets[tier.value], refill_interval_sec)
            for tier in QualityTier
        }

    def for_tier(self, tier: QualityTier) -> RateLimiter:
        return self._limiters[QualityTier(tier)]


def budget_for(content_type: ContentType) -> Dict[str, int]:
    return {
        ContentType.TEXT: settings.text_remote_budget,
        ContentType.IMAGE: settings.image_remote_budget,
        ContentType.VIDEO: settings.video_remote_budget,
        ContentType.AUDIO: settings.audio_remote_budget,
    }[ContentType(content_type)]


def build_tier_limiters(content_type: ContentType) -> TieredRateLimiter:
    return TieredRateLimiter(budget_for(content_type))
