"""
Shared cascade policy for every detector.

Each detector runs: cache → local stage → (optional) on-device model →
escalation decision → remote stage → calibration → cache store. This module
holds the parts that are identical across content types:

  - per-type constants (inconclusive band, verdict thresholds)
  - the escalation decision and the remote blend, including token refunds
  - score → confidence bucketing and result construction
"""

import math
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from realitycheck.config import settings
from realitycheck.core.rate_limiter import TieredRateLimiter, build_tier_limiters
from realitycheck.detection.cache import ResultCache
from realitycheck.detection.model_backend import ModelBackend
from realitycheck.schemas.detection import (
    ConfidenceLevel,
    ContentType,
    DecisionStage,
    DetectionResult,
    DetectorOptions,
    RemotePayload,
    ResultSource,
)

logger = logging.getLogger(__name__)


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def score_to_confidence(score: float) -> ConfidenceLevel:
    if score >= settings.confidence_high_cut:
        return ConfidenceLevel.HIGH
    if score >= settings.confidence_medium_cut:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


def format_heuristic_step(label: str, value: Optional[float], threshold: float) -> str:
    if value is None:
        return f"{label} = n/a"
    verdict = "AI" if value >= threshold else "Not AI"
    return f"{label} = {value:.2f} : threshold ({threshold:.2f}) => {verdict}"


@dataclass
class Escalation:
    score: float
    remote_score: float


class Detector(ABC):
    content_type: ContentType

    def __init__(
        self,
        cache: Optional[ResultCache] = None,
        limiters: Optional[TieredRateLimiter] = None,
        backend: Optional[ModelBackend] = None,
    ):
        self.cache = cache if cache is not None else ResultCache()
        self.limiters = limiters if limiters is not None else build_tier_limiters(self.content_type)
        self.backend = backend

    @abstractmethod
    async def detect(self, content: Any, options: Optional[DetectorOptions] = None) -> DetectionResult:
        ...

    # ------------------------------------------------------------------ #
    # Per-type constants (read at call time so overrides take effect)     #
    # ------------------------------------------------------------------ #
    def _setting(self, name: str) -> float:
        return getattr(settings, f"{self.content_type.value}_{name}")

    @property
    def band(self) -> tuple:
        return self._setting("band_low"), self._setting("band_high")

    @property
    def local_threshold(self) -> float:
        return self._setting("local_ai_threshold")

    def in_band(self, score: float) -> bool:
        low, high = self.band
        return low < score < high

    def cache_key(self, fingerprint: str) -> str:
        return f"{self.content_type.value}:{fingerprint}"

    # ------------------------------------------------------------------ #
    # Escalation                                                          #
    # ------------------------------------------------------------------ #
    async def escalate(
        self,
        score: float,
        options: DetectorOptions,
        build_payload: Callable[[], Optional[RemotePayload]],
    ) -> Optional[Escalation]:
        """
        Ask the remote backend about an inconclusive score.

        Returns None (and leaves `score` authoritative) when the score is
        outside the band, escalation is disabled, no strategy is supplied,
        the tier's budget is exhausted, there is nothing to send, or the
        call fails. A failed call refunds its token.
        """
        if not self.in_band(score):
            return None
        if not options.remote_enabled or options.remote_classify is None:
            return None

        limiter = self.limiters.for_tier(options.quality)
        if not limiter.consume():
            logger.info(f"[REMOTE] {self.content_type.value} budget exhausted for tier {options.quality.value}")
            return None

        try:
            payload = build_payload()
            if payload is None:
                limiter.return_token()
                return None
            endpoint = options.remote_endpoint or settings.remote_endpoint
            api_key = options.remote_api_key or settings.remote_api_key
            result = await options.remote_classify(endpoint, api_key, self.content_type, payload)
        except Exception as e:
            limiter.return_token()
            logger.warning(f"[REMOTE] {self.content_type.value} classification failed: {e}")
            return None

        remote_score = float(result.score)
        if not math.isfinite(remote_score):
            limiter.return_token()
            logger.warning(f"[REMOTE] {self.content_type.value} returned non-finite score {remote_score}")
            return None
        remote_score = clamp01(remote_score)
        blended = (
            score * settings.remote_local_weight
            + remote_score * settings.remote_remote_weight
        )
        logger.info(f"[REMOTE] {self.content_type.value} local={score:.2f} remote={remote_score:.2f} → {blended:.2f}")
        return Escalation(score=clamp01(blended), remote_score=remote_score)

    # ------------------------------------------------------------------ #
    # Calibration                                                         #
    # ------------------------------------------------------------------ #
    def build_result(
        self,
        score: float,
        source: ResultSource,
        stage: DecisionStage,
        heuristic_scores: Optional[Dict[str, float]] = None,
        details: Optional[str] = None,
        local_inconclusive: bool = False,
        local_model_score: Optional[float] = None,
        is_ai_generated: Optional[bool] = None,
        skipped_by_pre_filter: bool = False,
    ) -> DetectionResult:
        score = clamp01(score)
        if is_ai_generated is None:
            threshold = (
                self.local_threshold if source == ResultSource.LOCAL
                else settings.remote_ai_threshold
            )
            is_ai_generated = score >= threshold
        return DetectionResult(
            content_type=self.content_type,
            is_ai_generated=is_ai_generated,
            confidence=score_to_confidence(score),
            score=score,
            source=source,
            decision_stage=stage,
            heuristic_scores=heuristic_scores or {},
            details=details,
            skipped_by_pre_filter=skipped_by_pre_filter,
            local_inconclusive=local_inconclusive,
            local_model_score=local_model_score,
        )

    def store(self, key: str, result: DetectionResult) -> DetectionResult:
        self.cache.set(key, result)
        return result
