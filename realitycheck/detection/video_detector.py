"""
Video detector: URL heuristics + multi-frame sampling + remote escalation.

Flow:
  1. URL patterns of known generator platforms. A match is conclusive.
  2. Sample evenly spaced frames from the frame source (each capture bounded
     by settings.video_frame_timeout_sec) and compute:
       - temporal signal: nearly static footage, or erratic frame-to-frame change
       - visual AI score averaged over frames
       - on-device model score averaged over frames (when a backend is set)
  3. Escalate inconclusive scores to the remote backend with the sampled frames.

Frame-level deepfake detection needs a dedicated model; locally this only
combines URL, temporal and colour statistics.
"""

import re
import asyncio
import logging
import statistics
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

import numpy as np

from realitycheck.config import settings
from realitycheck.detection.base import Detector, format_heuristic_step
from realitycheck.detection.features import visual_ai_score
from realitycheck.detection.frames import FrameSource, encode_jpeg_data_url, resize_rgba
from realitycheck.detection.hashing import hash_data_url, hash_media, hash_source
from realitycheck.detection.model_backend import run_model_score
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

AI_VIDEO_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"sora\.openai",
        r"runwayml",
        r"pika\.art",
        r"kaiber\.ai",
        r"d-id\.com",
        r"heygen\.com",
        r"synthesia\.io",
        r"deep[-]?fake",
        r"gen[-]?2",
    )
]

OBVIOUS_URL_SCORE = 0.7
LOCKED_AI_SCORE = 0.95
LOCKED_HUMAN_SCORE = 0.05
REMOTE_FRAME_MAX_SIDE = 128


@dataclass
class VideoContent:
    src: str = ""
    frame_source: Optional[FrameSource] = None
    # Cache fingerprint for content that is not identified by `src` alone
    fingerprint: Optional[str] = None


@dataclass
class FrameAnalysis:
    frames: List[str] = field(default_factory=list)
    temporal_score: float = 0.0
    visual_score: float = 0.0
    model_score: Optional[float] = None


def matches_ai_video_url(src: str) -> bool:
    return any(p.search(src) for p in AI_VIDEO_PATTERNS)


def model_frame_dimensions(width: int, height: int, quality: QualityTier) -> Tuple[int, int]:
    """Full size at high tier, half at medium, at most settings.video_model_max_side at low."""
    if quality == QualityTier.HIGH:
        return width, height
    if quality == QualityTier.MEDIUM:
        return max(1, round(width / 2)), max(1, round(height / 2))
    scale = min(1.0, settings.video_model_max_side / max(width, height))
    return max(1, round(width * scale)), max(1, round(height * scale))


def _bounded_dimensions(width: int, height: int, max_side: int) -> Tuple[int, int]:
    scale = min(1.0, max_side / max(width, height))
    return max(1, round(width * scale)), max(1, round(height * scale))


def mean_frame_difference(a: np.ndarray, b: np.ndarray) -> float:
    """Mean absolute luminance difference on the 0–255 scale."""
    if a.shape != b.shape or a.size == 0:
        return 0.0
    weights = np.array([299, 587, 114]) / 1000
    lum_a = a[..., :3].astype(np.float64) @ weights
    lum_b = b[..., :3].astype(np.float64) @ weights
    return float(np.abs(lum_a - lum_b).mean())


def temporal_score(frames: List[np.ndarray]) -> float:
    """
    Nearly static footage scores 0.25; erratic frame-to-frame change adds up
    to another 0.25. Needs at least two frames.
    """
    if len(frames) < 2:
        return 0.0
    diffs = [mean_frame_difference(frames[i - 1], frames[i]) for i in range(1, len(frames))]
    mean_diff = statistics.fmean(diffs)
    diff_variance = statistics.pvariance(diffs)
    static = 0.25 if mean_diff < 3 else 0.0
    inconsistency = min(0.25, diff_variance / 500)
    return static + inconsistency


class VideoDetector(Detector):
    content_type = ContentType.VIDEO

    async def _capture(self, source: FrameSource, timestamp: float, width: int, height: int) -> Optional[np.ndarray]:
        try:
            return await asyncio.wait_for(
                source.capture(timestamp, width, height),
                timeout=settings.video_frame_timeout_sec,
            )
        except asyncio.TimeoutError:
            logger.info(f"[VIDEO] Frame capture at {timestamp:.2f}s timed out")
        except Exception as e:
            logger.warning(f"[VIDEO] Frame capture at {timestamp:.2f}s failed: {e}")
        return None

    async def analyze_frames(self, source: FrameSource, quality: QualityTier) -> FrameAnalysis:
        duration = source.duration
        if not duration or duration <= 0 or not source.width or not source.height:
            return FrameAnalysis()

        count = settings.video_frame_count
        size = settings.prefilter_size
        model_w, model_h = model_frame_dimensions(source.width, source.height, quality)
        remote_w, remote_h = _bounded_dimensions(source.width, source.height, REMOTE_FRAME_MAX_SIDE)
        capture_w, capture_h = (model_w, model_h) if self.backend is not None else (remote_w, remote_h)

        step = duration / (count + 1)
        analysis_frames: List[np.ndarray] = []
        model_frames: List[np.ndarray] = []
        data_urls: List[str] = []

        for i in range(1, count + 1):
            frame = await self._capture(source, step * i, capture_w, capture_h)
            if frame is None:
                continue
            analysis_frames.append(resize_rgba(frame, size, size))
            model_frames.append(frame)
            data_urls.append(
                encode_jpeg_data_url(resize_rgba(frame, remote_w, remote_h), settings.video_jpeg_quality)
            )

        logger.info(f"[VIDEO] Captured {len(analysis_frames)}/{count} frames")
        if len(analysis_frames) < 2:
            return FrameAnalysis(frames=data_urls)

        visual = statistics.fmean(visual_ai_score(f) for f in analysis_frames)

        model_scores = [
            s for s in [await run_model_score(self.backend, f, capture_w, capture_h) for f in model_frames]
            if s is not None
        ]
        model = statistics.fmean(model_scores) if model_scores else None

        return FrameAnalysis(
            frames=data_urls,
            temporal_score=temporal_score(analysis_frames),
            visual_score=visual,
            model_score=model,
        )

    def _remote_payload(self, src: str, analysis: FrameAnalysis) -> Optional[RemotePayload]:
        if analysis.frames:
            first = analysis.frames[0]
            return RemotePayload(image_hash=hash_data_url(first), image_data_url=first, frames=analysis.frames)
        if src:
            return RemotePayload(image_hash=hash_source(src), image_url=src)
        return None

    async def detect(
        self, content: Union[VideoContent, str], options: Optional[DetectorOptions] = None
    ) -> DetectionResult:
        options = options or DetectorOptions()
        video = content if isinstance(content, VideoContent) else VideoContent(src=content or "")
        key = self.cache_key(video.fingerprint or hash_media(video.src))

        cached = self.cache.get(key)
        if cached is not None:
            return cached

        band_low, band_high = self.band
        url_score = OBVIOUS_URL_SCORE if matches_ai_video_url(video.src) else 0.0
        scores = {"metadataUrl": url_score}

        if url_score >= OBVIOUS_URL_SCORE:
            result = self.build_result(
                LOCKED_AI_SCORE,
                ResultSource.LOCAL,
                DecisionStage.INITIAL_HEURISTICS,
                heuristic_scores=scores,
                details=f"Initial heuristics (metadata/URL) flagged obvious AI ({url_score:.2f})",
                is_ai_generated=True,
            )
            return self.store(key, result)

        score = url_score
        stage = DecisionStage.INITIAL_HEURISTICS
        details = f"Initial heuristics score: {url_score:.2f}"
        analysis = FrameAnalysis()

        if video.frame_source is not None:
            analysis = await self.analyze_frames(video.frame_source, QualityTier(options.quality))
            scores["temporal"] = analysis.temporal_score
            scores["visual"] = analysis.visual_score

            temporal_boost = min(0.3, analysis.temporal_score)
            visual_boost = analysis.visual_score * 0.35
            composite = min(1.0, url_score + temporal_boost + visual_boost)
            locked = False
            score = composite
            details = f"Initial+temporal+visual score: {composite:.2f}"

            if composite >= band_high:
                score = LOCKED_AI_SCORE
                locked = True
                details = f"Initial heuristics independently flagged AI ({composite:.2f})"

            if analysis.model_score is not None:
                model = analysis.model_score
                scores["localMl"] = model
                if model >= band_high:
                    score = LOCKED_AI_SCORE
                elif model <= band_low:
                    if not locked:
                        score = LOCKED_HUMAN_SCORE
                elif not locked:
                    score = min(band_high, composite * 0.6 + model * 0.4)
                stage = DecisionStage.LOCAL_ML
                verdict = "AI generated" if model >= 0.5 else "Not AI generated"
                details = (
                    f"Local ML frame verdict: {verdict} ({model:.2f}), "
                    f"temporal={analysis.temporal_score:.2f}"
                )

        inconclusive = self.in_band(score)
        source = ResultSource.LOCAL

        escalation = await self.escalate(score, options, lambda: self._remote_payload(video.src, analysis))
        if escalation is not None:
            scores["remote"] = escalation.remote_score
            score = escalation.score
            source = ResultSource.REMOTE
            stage = DecisionStage.REMOTE_ML
            details = f"Remote ML score: {escalation.remote_score:.2f} (blended {score:.2f})"

        summary = " | ".join([
            format_heuristic_step("CDN Score", scores.get("metadataUrl"), OBVIOUS_URL_SCORE),
            format_heuristic_step("Temporal Analysis", scores.get("temporal"), 0.2),
            format_heuristic_step("Visual Score", scores.get("visual"), 0.35),
            format_heuristic_step("Local ML Score", scores.get("localMl"), band_high),
            format_heuristic_step("Remote ML Score", scores.get("remote"), 0.5),
        ])

        result = self.build_result(
            score,
            source,
            stage,
            heuristic_scores=scores,
            details=f"{details} | {summary}",
            local_inconclusive=inconclusive,
            local_model_score=analysis.model_score,
        )
        return self.store(key, result)
