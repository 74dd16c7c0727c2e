"""
Photorealism pre-filter.

Cheap gate in front of the image cascade: icons, logos, flat illustrations
and UI chrome score low and are skipped before any expensive stage runs.
Higher = more photorealistic.

  - low:    colour count + channel entropy + edge complexity
  - medium: low tier + block noise + saturation variance
  - high:   medium tier blended with the on-device model (if one is supplied)
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from realitycheck.config import settings
from realitycheck.detection import features
from realitycheck.detection.model_backend import ModelBackend, run_model_score
from realitycheck.schemas.detection import QualityTier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PhotorealismResult:
    is_photorealistic: bool
    score: float
    # Backend output when the high tier consulted it, so callers can reuse it.
    model_score: Optional[float] = None


def _ramp(value: float, lo: float, hi: float) -> float:
    return min(1.0, max(0.0, (value - lo) / (hi - lo)))


def score_low_tier(pixels: np.ndarray) -> float:
    color_score = _ramp(features.count_unique_colors(pixels), 50, 400)
    entropy_score = _ramp(features.channel_entropy(pixels), 2.0, 4.5)
    edge_score = _ramp(features.edge_complexity(pixels), 3, 20)
    return color_score * 0.4 + entropy_score * 0.4 + edge_score * 0.2


def score_medium_tier(pixels: np.ndarray) -> float:
    noise_score = _ramp(features.block_variance(pixels), 20, 200)
    sat_score = _ramp(features.saturation_variance(pixels), 0.03, 0.06)
    return score_low_tier(pixels) * 0.7 + noise_score * 0.15 + sat_score * 0.15


async def run_photorealism_prefilter(
    pixels: Optional[np.ndarray],
    quality: QualityTier,
    backend: Optional[ModelBackend] = None,
) -> PhotorealismResult:
    """Decide whether an image is worth analyzing. No pixels → let it through."""
    if pixels is None:
        return PhotorealismResult(is_photorealistic=True, score=0.5)

    model_score = None
    if quality == QualityTier.LOW:
        score = score_low_tier(pixels)
    elif quality == QualityTier.MEDIUM:
        score = score_medium_tier(pixels)
    else:
        medium = score_medium_tier(pixels)
        model_score = await run_model_score(backend, pixels, pixels.shape[1], pixels.shape[0])
        if model_score is None:
            score = medium
        else:
            w = settings.prefilter_model_weight
            score = medium * (1 - w) + model_score * w

    score = min(1.0, max(0.0, score))
    is_photo = score >= settings.photorealism_skip_threshold
    logger.debug(f"[PREFILTER] tier={QualityTier(quality).value} score={score:.3f} pass={is_photo}")
    return PhotorealismResult(is_photorealistic=is_photo, score=score, model_score=model_score)
