"""
Image detector: pre-filter gate → URL/dimension heuristics → visual score →
camera metadata + provenance → on-device model → remote escalation.

Pixels are analyzed on a small square RGBA buffer (settings.prefilter_size).
The buffer comes from the caller when it could capture one, otherwise it is
decoded from the encoded bytes or data URL when those are at hand. An image
whose pixels are unreachable still runs every stage that does not need them.
"""

import re
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Union

import numpy as np

from realitycheck.config import settings
from realitycheck.core.data_url import decode_data_url
from realitycheck.detection.base import Detector, format_heuristic_step
from realitycheck.detection.exif_parser import get_camera_ai_score, parse_camera_metadata
from realitycheck.detection.features import visual_ai_score
from realitycheck.detection.frames import decode_to_rgba, encode_jpeg_data_url, resize_rgba
from realitycheck.detection.hashing import hash_bytes, hash_data_url, hash_media, hash_pixels, hash_source
from realitycheck.detection.model_backend import run_model_score
from realitycheck.detection.prefilter import run_photorealism_prefilter
from realitycheck.detection.provenance import detect_provenance
from realitycheck.schemas.detection import (
    ContentType,
    DecisionStage,
    DetectionResult,
    DetectorOptions,
    QualityTier,
    RemotePayload,
    ResultSource,
)

logger = logging.getLogger(__name__)

AI_CDN_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"midjourney",
        r"dalle[_-]?(2|3)?",
        r"stability\.ai",
        r"runwayml",
        r"novelai",
        r"civitai",
        r"dreamstudio",
        r"images\.openai\.com",
        r"cdn\.leonardo\.ai",
        r"firefly\.adobe\.com",
    )
]

AI_ASPECT_RATIOS = [(1, 1), (4, 3), (3, 4), (16, 9), (9, 16), (3, 2), (2, 3)]


@dataclass
class ImageContent:
    src: str = ""
    width: int = 0
    height: int = 0
    pixels: Optional[np.ndarray] = None
    encoded: Optional[bytes] = None


def matches_ai_cdn(src: str) -> bool:
    return any(p.search(src) for p in AI_CDN_PATTERNS)


def is_power_of_two(n: int) -> bool:
    return n > 0 and (n & (n - 1)) == 0


def is_likely_ai_aspect_ratio(width: int, height: int) -> bool:
    if width == 0 or height == 0:
        return False
    ratio = width / height
    return any(abs(ratio - rw / rh) < 0.02 for rw, rh in AI_ASPECT_RATIOS)


def compute_local_image_score(src: str, width: int, height: int) -> float:
    score = 0.0
    if matches_ai_cdn(src):
        score += 0.7
    if is_power_of_two(width) and is_power_of_two(height):
        score += 0.2
    elif is_likely_ai_aspect_ratio(width, height):
        score += 0.1
    if width > 0 and width % 64 == 0 and height % 64 == 0:
        score += 0.1
    return min(1.0, score)


def image_fingerprint(image: ImageContent) -> str:
    """Cache fingerprint: the full source, else the full encoded bytes, else every pixel."""
    if image.src:
        return hash_media(image.src)
    if image.encoded:
        return hash_bytes(image.encoded)
    if image.pixels is not None:
        return hash_pixels(image.pixels)
    return hash_media("")


class ImageDetector(Detector):
    content_type = ContentType.IMAGE

    async def _load_pixels(self, image: ImageContent) -> Optional[np.ndarray]:
        size = settings.prefilter_size
        if image.pixels is not None:
            return resize_rgba(image.pixels, size, size)
        data = image.encoded or (decode_data_url(image.src) if image.src.startswith("data:") else None)
        if not data:
            return None
        return await asyncio.to_thread(decode_to_rgba, data, size, size)

    async def _metadata_bytes(self, image: ImageContent, options: DetectorOptions) -> Optional[bytes]:
        if image.encoded:
            return image.encoded
        if image.src.startswith("data:"):
            return decode_data_url(image.src)
        if re.match(r"^https?://", image.src) and options.fetch_bytes is not None:
            try:
                return await options.fetch_bytes(image.src)
            except Exception as e:
                logger.warning(f"[IMAGE] Metadata fetch failed for {image.src[:80]}: {e}")
        return None

    def _remote_payload(self, image: ImageContent, pixels: Optional[np.ndarray]) -> RemotePayload:
        if pixels is not None:
            data_url = encode_jpeg_data_url(pixels, settings.video_jpeg_quality)
            return RemotePayload(image_hash=hash_data_url(data_url), image_data_url=data_url)
        if image.src.startswith("data:"):
            return RemotePayload(image_hash=hash_data_url(image.src), image_data_url=image.src)
        return RemotePayload(image_hash=hash_source(image.src), image_url=image.src)

    async def detect(
        self, content: Union[ImageContent, str], options: Optional[DetectorOptions] = None
    ) -> DetectionResult:
        options = options or DetectorOptions()
        image = content if isinstance(content, ImageContent) else ImageContent(src=content or "")
        key = self.cache_key(image_fingerprint(image))

        cached = self.cache.get(key)
        if cached is not None:
            return cached

        quality = QualityTier(options.quality)
        pixels = await self._load_pixels(image)

        # ---- Gate ----
        pre = await run_photorealism_prefilter(
            pixels, quality, self.backend if quality == QualityTier.HIGH else None
        )
        scores = {"preFilter": pre.score}
        if not pre.is_photorealistic:
            logger.info(f"[IMAGE] Skipped by pre-filter ({pre.score:.2f}): {image.src[:80]}")
            result = self.build_result(
                0.0,
                ResultSource.LOCAL,
                DecisionStage.PRE_FILTER,
                heuristic_scores=scores,
                details=f"Pre-filter score {pre.score:.2f} below threshold, not photorealistic",
                is_ai_generated=False,
                skipped_by_pre_filter=True,
            )
            return self.store(key, result)

        # ---- Local heuristics ----
        url_score = compute_local_image_score(image.src, image.width, image.height)
        scores["metadataUrl"] = url_score
        score = url_score

        if pixels is not None and quality != QualityTier.LOW:
            visual = visual_ai_score(pixels)
            weight = (
                settings.image_visual_weight_high if quality == QualityTier.HIGH
                else settings.image_visual_weight_medium
            )
            scores["visual"] = visual
            score = max(score, visual * weight)

        metadata = await self._metadata_bytes(image, options)
        if metadata:
            exif_score = get_camera_ai_score(parse_camera_metadata(metadata))
            provenance = detect_provenance(metadata)
            scores["exif"] = exif_score
            scores["provenance"] = provenance.score_adjustment
            if exif_score > 0:
                w = settings.exif_blend_weight
                score = min(1.0, score * (1 - w) + exif_score * w)
            score = max(0.0, score + provenance.score_adjustment)

        stage = DecisionStage.INITIAL_HEURISTICS

        # ---- On-device model ----
        model_score = pre.model_score
        if model_score is None:
            model_score = await run_model_score(self.backend, pixels, settings.prefilter_size, settings.prefilter_size)
        if model_score is not None:
            scores["localMl"] = model_score
            w = settings.model_blend_weight
            score = score * (1 - w) + model_score * w
            stage = DecisionStage.LOCAL_ML

        inconclusive = self.in_band(score)

        # ---- Remote ----
        escalation = await self.escalate(score, options, lambda: self._remote_payload(image, pixels))
        if escalation is not None:
            scores["remote"] = escalation.remote_score
            result = self.build_result(
                escalation.score,
                ResultSource.REMOTE,
                DecisionStage.REMOTE_ML,
                heuristic_scores=scores,
                details=f"Remote ML score: {escalation.remote_score:.2f} (blended {escalation.score:.2f})",
                local_inconclusive=inconclusive,
                local_model_score=model_score,
            )
        else:
            result = self.build_result(
                score,
                ResultSource.LOCAL,
                stage,
                heuristic_scores=scores,
                details=" | ".join([
                    format_heuristic_step("CDN Score", url_score, 0.7),
                    format_heuristic_step("Visual Score", scores.get("visual"), self.local_threshold),
                    format_heuristic_step("Local ML Score", model_score, settings.confidence_high_cut),
                ]),
                local_inconclusive=inconclusive,
                local_model_score=model_score,
            )

        return self.store(key, result)
