"""
On-device inference backend.

A backend is any object with `async run(pixels, width, height) -> float`
returning an AI probability. Failures are allowed to raise; detectors call
backends through `run_model_score`, which logs and falls back.

Backends are passed to detectors and the pipeline explicitly. There is no
process-wide registry.
"""

import math
import asyncio
import logging
from typing import Callable, Dict, Optional, Protocol

import numpy as np

from realitycheck.config import settings
from realitycheck.detection.features import FeatureVector, extract_features
from realitycheck.detection.frames import resize_rgba

logger = logging.getLogger(__name__)


class ModelBackend(Protocol):
    async def run(self, pixels: np.ndarray, width: int, height: int) -> float:
        ...


Predictor = Callable[[np.ndarray, FeatureVector], float]


def predict_mini(pixels: np.ndarray, features: FeatureVector) -> float:
    """Logistic model over colour and smoothness statistics."""
    lum_var_score = max(0.0, 1 - max(0.0, features.luminance_variance - 0.04) / 0.10)
    linear = (
        -1.80
        + features.mean_saturation * 2.6
        + (1 - features.saturation_variance * 8) * 1.2
        + (1 - abs(features.mean_luminance - 0.5) * 2) * 0.9
        + features.channel_uniformity * 0.7
        + features.gradient_smoothness * 0.8
        + lum_var_score * 0.4
    )
    return 1 / (1 + math.exp(-linear))


PREDICTORS: Dict[str, Predictor] = {
    "mini": predict_mini,
}


def calibrate(score: float) -> float:
    """Pull confident outputs to the edges, keep the middle for escalation."""
    score = max(0.0, min(1.0, score))
    if score >= 0.9:
        return 0.95
    if score <= 0.1:
        return 0.05
    return score


class FeatureModelBackend:
    """Runs a feature-based predictor over the buffer it is handed."""

    def __init__(self, model: str = "mini", predictor: Optional[Predictor] = None):
        if predictor is None:
            predictor = PREDICTORS.get(model, predict_mini)
        self.model = model
        self._predictor = predictor

    def _score(self, pixels: np.ndarray) -> float:
        h, w = pixels.shape[:2]
        scale = min(1.0, settings.feature_model_max_side / max(w, h))
        if scale < 1.0:
            pixels = resize_rgba(pixels, max(1, round(w * scale)), max(1, round(h * scale)))
        return calibrate(self._predictor(pixels, extract_features(pixels)))

    async def run(self, pixels: np.ndarray, width: int, height: int) -> float:
        return await asyncio.to_thread(self._score, pixels)


async def run_model_score(
    backend: Optional[ModelBackend], pixels: Optional[np.ndarray], width: int, height: int
) -> Optional[float]:
    """Invoke the backend and clamp its output; None when absent or failing."""
    if backend is None or pixels is None:
        return None
    try:
        score = await backend.run(pixels, width, height)
    except Exception as e:
        logger.warning(f"[MODEL] Backend inference failed: {e}")
        return None
    score = float(score)
    if not math.isfinite(score):
        logger.warning(f"[MODEL] Backend returned non-finite score {score}")
        return None
    return max(0.0, min(1.0, score))
