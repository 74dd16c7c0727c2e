"""Unit tests for realitycheck/detection/model_backend.py."""

import threading
from unittest.mock import AsyncMock, MagicMock

import numpy as np
import pytest

from realitycheck.config import settings

from realitycheck.detection.features import extract_features
from realitycheck.detection.model_backend import (
    PREDICTORS,
    FeatureModelBackend,
    calibrate,
    predict_mini,
    run_model_score,
)
from tests.conftest import flat_pixels, noise_pixels


@pytest.mark.parametrize(
    "raw,expected",
    [(0.97, 0.95), (0.9, 0.95), (0.5, 0.5), (0.1, 0.05), (0.0, 0.05), (1.4, 0.95), (-0.2, 0.05)],
)
def test_calibrate(raw, expected):
    assert calibrate(raw) == expected


def test_mini_predictor_is_a_probability():
    for px in (flat_pixels(), flat_pixels((255, 0, 0)), noise_pixels()):
        p = predict_mini(px, extract_features(px))
        assert 0.0 < p < 1.0


def test_mini_predictor_prefers_smooth_saturated_images():
    smooth = flat_pixels((200, 60, 40))
    rough = noise_pixels()
    assert predict_mini(smooth, extract_features(smooth)) > predict_mini(rough, extract_features(rough))


def test_mini_is_registered():
    assert PREDICTORS["mini"] is predict_mini


async def test_feature_backend_calibrates_predictor_output():
    predictor = MagicMock(return_value=0.93)
    backend = FeatureModelBackend(predictor=predictor)
    px = noise_pixels()

    assert await backend.run(px, 64, 64) == 0.95
    args = predictor.call_args.args
    assert args[0] is px
    assert args[1] == extract_features(px)


async def test_unknown_model_name_falls_back_to_mini():
    backend = FeatureModelBackend(model="does-not-exist")
    score = await backend.run(flat_pixels(), 64, 64)
    assert 0.0 <= score <= 1.0


async def test_run_model_score_without_backend():
    assert await run_model_score(None, noise_pixels(), 64, 64) is None


async def test_run_model_score_without_pixels():
    backend = MagicMock()
    backend.run = AsyncMock(return_value=0.5)
    assert await run_model_score(backend, None, 0, 0) is None
    backend.run.assert_not_called()


async def test_run_model_score_clamps():
    backend = MagicMock()
    backend.run = AsyncMock(return_value=1.7)
    assert await run_model_score(backend, noise_pixels(), 64, 64) == 1.0


async def test_run_model_score_swallows_backend_errors():
    backend = MagicMock()
    backend.run = AsyncMock(side_effect=ValueError("bad tensor"))
    assert await run_model_score(backend, noise_pixels(), 64, 64) is None


@pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
async def test_run_model_score_rejects_non_finite(value):
    backend = MagicMock()
    backend.run = AsyncMock(return_value=value)
    assert await run_model_score(backend, noise_pixels(), 64, 64) is None


async def test_feature_backend_downscales_large_buffers():
    predictor = MagicMock(return_value=0.5)
    backend = FeatureModelBackend(predictor=predictor)
    frame = np.zeros((1080, 1920, 4), dtype=np.uint8)

    await backend.run(frame, 1920, 1080)

    seen = predictor.call_args.args[0]
    assert max(seen.shape[:2]) == settings.feature_model_max_side
    assert seen.shape[1] > seen.shape[0]


async def test_feature_backend_scores_off_the_event_loop():
    threads = []

    def predictor(pixels, features):
        threads.append(threading.get_ident())
        return 0.5

    await FeatureModelBackend(predictor=predictor).run(noise_pixels(), 64, 64)
    assert threads and threads[0] != threading.get_ident()
