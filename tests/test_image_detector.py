"""
Unit tests for realitycheck/detection/image_detector.py.

Pixel buffers come from tests/conftest.py; the model backend, remote strategy
and byte fetcher are mocks, so each stage of the cascade is observable.
"""

import struct
import zlib
from unittest.mock import AsyncMock, MagicMock

import pytest

from realitycheck.config import settings
from realitycheck.detection.features import visual_ai_score
from realitycheck.detection.hashing import hash_source
from realitycheck.detection.image_detector import (
    ImageContent,
    ImageDetector,
    compute_local_image_score,
    image_fingerprint,
    is_likely_ai_aspect_ratio,
    is_power_of_two,
    matches_ai_cdn,
)
from realitycheck.schemas.detection import (
    ConfidenceLevel,
    ContentType,
    DecisionStage,
    DetectorOptions,
    QualityTier,
    RemoteClassification,
    ResultSource,
)
from tests.conftest import camera_exif, flat_pixels, generator_exif, make_jpeg, make_jpeg_data_url, noise_pixels

GENERATOR_URL = "https://cdn.midjourney.com/0a1b2c/0_0.png"
PLAIN_URL = "https://example.com/photo.png"


def _backend(score: float = 0.95) -> MagicMock:
    backend = MagicMock()
    backend.run = AsyncMock(return_value=score)
    return backend


def _png_with_manifest() -> bytes:
    def chunk(kind: bytes, data: bytes) -> bytes:
        return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", zlib.crc32(kind + data))

    ihdr = chunk(b"IHDR", struct.pack(">IIBBBBB", 1, 1, 8, 6, 0, 0, 0))
    return b"\x89PNG\r\n\x1a\n" + ihdr + chunk(b"caBX", b"jumbc2pa") + chunk(b"IEND", b"")


def _medium_visual(pixels) -> float:
    return visual_ai_score(pixels) * settings.image_visual_weight_medium


# ---------------------------------------------------------------------------
# URL and dimension heuristics
# ---------------------------------------------------------------------------


def test_generator_cdn_patterns():
    assert matches_ai_cdn(GENERATOR_URL)
    assert matches_ai_cdn("https://images.openai.com/x.png")
    assert matches_ai_cdn("https://example.com/DALLE-3-output.jpg")
    assert not matches_ai_cdn(PLAIN_URL)


def test_is_power_of_two():
    assert is_power_of_two(1024)
    assert is_power_of_two(1)
    assert not is_power_of_two(0)
    assert not is_power_of_two(768)


def test_ai_aspect_ratios():
    assert is_likely_ai_aspect_ratio(1920, 1080)
    assert is_likely_ai_aspect_ratio(800, 1200)
    assert not is_likely_ai_aspect_ratio(1000, 370)
    assert not is_likely_ai_aspect_ratio(0, 100)


@pytest.mark.parametrize(
    "src,width,height,expected",
    [
        (PLAIN_URL, 0, 0, 0.0),
        (PLAIN_URL, 1024, 1024, 0.3),
        (PLAIN_URL, 1024, 768, 0.2),
        (PLAIN_URL, 1920, 1080, 0.1),
        (GENERATOR_URL, 0, 0, 0.7),
        (GENERATOR_URL, 1024, 1024, 1.0),
    ],
)
def test_compute_local_image_score(src, width, height, expected):
    assert compute_local_image_score(src, width, height) == pytest.approx(expected)


def test_fingerprint_falls_back_to_bytes_without_src():
    a = ImageContent(pixels=noise_pixels(seed=1))
    b = ImageContent(pixels=noise_pixels(seed=2))
    assert image_fingerprint(a) != image_fingerprint(b)
    assert image_fingerprint(ImageContent(src=PLAIN_URL)) == hash_source(PLAIN_URL)


def test_fingerprint_covers_whole_data_url():
    prefix = "data:image/jpeg;base64," + "A" * settings.fingerprint_data_url_chars
    a = ImageContent(src=prefix + "BBBB")
    b = ImageContent(src=prefix + "CCCC")
    assert image_fingerprint(a) != image_fingerprint(b)


def test_fingerprint_covers_all_encoded_bytes():
    header = b"\xff\xd8" + b"\x00" * 300
    assert image_fingerprint(ImageContent(encoded=header + b"a")) != image_fingerprint(ImageContent(encoded=header + b"b"))


def test_fingerprint_covers_every_pixel():
    a = flat_pixels()
    b = flat_pixels()
    b[-1, -1, :3] = 0
    assert image_fingerprint(ImageContent(pixels=a)) != image_fingerprint(ImageContent(pixels=b))


# ---------------------------------------------------------------------------
# Cascade
# ---------------------------------------------------------------------------


async def test_generator_url_without_pixels_is_ai_locally():
    strategy = AsyncMock(return_value=RemoteClassification(score=0.1))
    options = DetectorOptions(remote_enabled=True, remote_classify=strategy)
    result = await ImageDetector().detect(ImageContent(src=GENERATOR_URL), options)

    strategy.assert_not_called()
    assert result.content_type == ContentType.IMAGE
    assert result.is_ai_generated is True
    assert result.source == ResultSource.LOCAL
    assert result.score >= 0.7
    assert result.confidence == ConfidenceLevel.HIGH
    assert result.decision_stage == DecisionStage.INITIAL_HEURISTICS


async def test_accepts_bare_source_string():
    result = await ImageDetector().detect(GENERATOR_URL)
    assert result.score == pytest.approx(0.7)


async def test_flat_image_is_skipped_by_prefilter():
    strategy = AsyncMock(return_value=RemoteClassification(score=0.9))
    options = DetectorOptions(remote_enabled=True, remote_classify=strategy)
    image = ImageContent(src=GENERATOR_URL, pixels=flat_pixels())
    result = await ImageDetector().detect(image, options)

    strategy.assert_not_called()
    assert result.skipped_by_pre_filter is True
    assert result.score == 0.0
    assert result.is_ai_generated is False
    assert result.decision_stage == DecisionStage.PRE_FILTER
    assert "metadataUrl" not in result.heuristic_scores


async def test_inconclusive_dimensions_escalate_with_url_payload():
    strategy = AsyncMock(return_value=RemoteClassification(score=0.9, label="ai"))
    options = DetectorOptions(remote_enabled=True, remote_classify=strategy)
    detector = ImageDetector()
    result = await detector.detect(ImageContent(src=PLAIN_URL, width=1024, height=1024), options)

    strategy.assert_awaited_once()
    _, _, content_type, payload = strategy.call_args.args
    assert content_type == ContentType.IMAGE
    assert payload.image_url == PLAIN_URL
    assert payload.image_hash == hash_source(PLAIN_URL)
    assert payload.image_data_url is None

    assert result.source == ResultSource.REMOTE
    assert result.decision_stage == DecisionStage.REMOTE_ML
    assert result.score == pytest.approx(0.3 * 0.3 + 0.9 * 0.7)
    assert result.local_inconclusive is True


async def test_remote_payload_carries_jpeg_when_pixels_exist():
    strategy = AsyncMock(return_value=RemoteClassification(score=0.5))
    options = DetectorOptions(remote_enabled=True, remote_classify=strategy, quality=QualityTier.LOW)
    image = ImageContent(src=PLAIN_URL, width=1024, height=1024, pixels=noise_pixels())
    await ImageDetector().detect(image, options)

    payload = strategy.call_args.args[3]
    assert payload.image_data_url.startswith("data:image/jpeg;base64,")
    assert payload.image_hash


async def test_rejected_remote_keeps_local_score_and_tokens():
    strategy = AsyncMock(side_effect=RuntimeError("HTTP 500"))
    options = DetectorOptions(remote_enabled=True, remote_classify=strategy)
    detector = ImageDetector()
    result = await detector.detect(ImageContent(src=PLAIN_URL, width=1024, height=1024), options)

    assert result.score == pytest.approx(0.3)
    assert result.source == ResultSource.LOCAL
    assert detector.limiters.for_tier(QualityTier.MEDIUM).remaining_tokens == settings.image_remote_budget["medium"]


async def test_confident_backend_at_high_tier():
    backend = _backend(0.95)
    result = await ImageDetector(backend=backend).detect(
        ImageContent(pixels=noise_pixels()), DetectorOptions(quality=QualityTier.HIGH)
    )

    # The pre-filter's model call is reused by the on-device stage
    backend.run.assert_awaited_once()
    assert result.is_ai_generated is True
    assert result.confidence == ConfidenceLevel.HIGH
    assert result.score >= 0.665
    assert result.decision_stage == DecisionStage.LOCAL_ML
    assert result.local_model_score == pytest.approx(0.95)
    assert result.heuristic_scores["localMl"] == pytest.approx(0.95)


async def test_backend_blend_at_medium_tier():
    px = noise_pixels()
    backend = _backend(0.2)
    result = await ImageDetector(backend=backend).detect(ImageContent(pixels=px), DetectorOptions())

    backend.run.assert_awaited_once()
    expected = _medium_visual(px) * (1 - settings.model_blend_weight) + 0.2 * settings.model_blend_weight
    assert result.score == pytest.approx(expected)
    assert result.decision_stage == DecisionStage.LOCAL_ML


async def test_failing_backend_falls_back_to_heuristics():
    backend = MagicMock()
    backend.run = AsyncMock(side_effect=RuntimeError("model not loaded"))
    px = noise_pixels()
    result = await ImageDetector(backend=backend).detect(ImageContent(pixels=px), DetectorOptions())

    assert result.decision_stage == DecisionStage.INITIAL_HEURISTICS
    assert result.local_model_score is None
    assert result.score == pytest.approx(_medium_visual(px))


async def test_camera_metadata_leaves_score_alone():
    px = noise_pixels()
    image = ImageContent(pixels=px, encoded=make_jpeg(exif=camera_exif()))
    result = await ImageDetector().detect(image, DetectorOptions())

    assert result.heuristic_scores["exif"] == 0.0
    assert result.heuristic_scores["provenance"] == 0.0
    assert result.score == pytest.approx(_medium_visual(px))


async def test_generator_software_is_blended_in():
    px = noise_pixels()
    image = ImageContent(pixels=px, encoded=make_jpeg(exif=generator_exif()))
    result = await ImageDetector().detect(image, DetectorOptions())

    w = settings.exif_blend_weight
    assert result.heuristic_scores["exif"] == settings.exif_generator_score
    assert result.score == pytest.approx(min(1.0, _medium_visual(px) * (1 - w) + settings.exif_generator_score * w))


async def test_provenance_manifest_lowers_score():
    px = noise_pixels()
    image = ImageContent(pixels=px, encoded=_png_with_manifest())
    result = await ImageDetector().detect(image, DetectorOptions())

    w = settings.exif_blend_weight
    blended = _medium_visual(px) * (1 - w) + settings.exif_absent_score * w
    assert result.heuristic_scores["provenance"] == pytest.approx(-0.30)
    assert result.score == pytest.approx(max(0.0, blended - 0.30))


async def test_metadata_is_fetched_for_remote_urls():
    fetch = AsyncMock(return_value=make_jpeg(exif=generator_exif()))
    options = DetectorOptions(fetch_bytes=fetch, quality=QualityTier.LOW)
    result = await ImageDetector().detect(ImageContent(src=PLAIN_URL), options)

    fetch.assert_awaited_once_with(PLAIN_URL)
    assert result.heuristic_scores["exif"] == settings.exif_generator_score
    assert result.score == pytest.approx(settings.exif_generator_score * settings.exif_blend_weight)


async def test_fetch_failure_drops_metadata_signal():
    fetch = AsyncMock(side_effect=OSError("connection refused"))
    result = await ImageDetector().detect(ImageContent(src=GENERATOR_URL), DetectorOptions(fetch_bytes=fetch))

    assert "exif" not in result.heuristic_scores
    assert result.score == pytest.approx(0.7)


async def test_data_url_source_is_decoded():
    data_url = make_jpeg_data_url(noise_pixels(32), exif=camera_exif())
    result = await ImageDetector().detect(ImageContent(src=data_url), DetectorOptions())

    assert result.heuristic_scores["exif"] == 0.0
    assert "preFilter" in result.heuristic_scores


async def test_low_tier_skips_visual_score():
    result = await ImageDetector().detect(
        ImageContent(pixels=noise_pixels()), DetectorOptions(quality=QualityTier.LOW)
    )
    assert "visual" not in result.heuristic_scores
    assert result.score == 0.0


async def test_repeat_detection_is_cached():
    strategy = AsyncMock(return_value=RemoteClassification(score=0.9))
    options = DetectorOptions(remote_enabled=True, remote_classify=strategy)
    detector = ImageDetector()
    image = ImageContent(src=PLAIN_URL, width=1024, height=1024)

    first = await detector.detect(image, options)
    second = await detector.detect(image, options)

    assert strategy.await_count == 1
    assert first == second


async def test_same_size_data_urls_are_cached_separately():
    detector = ImageDetector()
    flat = make_jpeg_data_url(flat_pixels((0, 200, 0), size=32))
    noisy = make_jpeg_data_url(noise_pixels(32))

    first = await detector.detect(ImageContent(src=flat))
    second = await detector.detect(ImageContent(src=noisy))

    assert first.skipped_by_pre_filter is True
    assert second is not first
    assert second.skipped_by_pre_filter is False


async def test_buffers_sharing_a_top_row_are_cached_separately():
    detector = ImageDetector()
    icon = flat_pixels((255, 255, 255))
    photo = noise_pixels()
    photo[0] = 255

    first = await detector.detect(ImageContent(pixels=icon))
    second = await detector.detect(ImageContent(pixels=photo))

    assert first.skipped_by_pre_filter is True
    assert second.skipped_by_pre_filter is False
