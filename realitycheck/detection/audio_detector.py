"""
Audio detector: voice-generator URL heuristics + remote escalation.

There is no on-device audio model; the local signal comes from where the
clip is hosted and how it is named.
"""

import re
import logging
from dataclasses import dataclass
from typing import Optional, Union

from realitycheck.detection.base import Detector, format_heuristic_step
from realitycheck.detection.hashing import hash_media, hash_source
from realitycheck.schemas.detection import (
    ContentType,
    DecisionStage,
    DetectionResult,
    DetectorOptions,
    RemotePayload,
    ResultSource,
)

logger = logging.getLogger(__name__)

AI_AUDIO_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"elevenlabs\.io",
        r"play\.ht",
        r"murf\.ai",
        r"resemble\.ai",
        r"suno\.(ai|com)",
        r"udio\.com",
        r"speechify\.com",
        r"wellsaidlabs\.com",
    )
]

SYNTHETIC_VOICE_HINTS = re.compile(
    r"(^|[/_\-.])(tts|text[-_]?to[-_]?speech|voice[-_]?clone|ai[-_]?voice|synthetic[-_]?voice)([/_\-.]|$)",
    re.IGNORECASE,
)


@dataclass
class AudioContent:
    src: str = ""


def compute_local_audio_score(src: str) -> float:
    score = 0.0
    if any(p.search(src) for p in AI_AUDIO_PATTERNS):
        score += 0.7
    if SYNTHETIC_VOICE_HINTS.search(src):
        score += 0.3
    return min(1.0, score)


class AudioDetector(Detector):
    content_type = ContentType.AUDIO

    async def detect(
        self, content: Union[AudioContent, str], options: Optional[DetectorOptions] = None
    ) -> DetectionResult:
        options = options or DetectorOptions()
        src = content.src if isinstance(content, AudioContent) else (content or "")
        key = self.cache_key(hash_media(src))

        cached = self.cache.get(key)
        if cached is not None:
            return cached

        local_score = compute_local_audio_score(src)
        scores = {"metadataUrl": local_score}
        inconclusive = self.in_band(local_score)

        escalation = await self.escalate(
            local_score,
            options,
            lambda: RemotePayload(image_hash=hash_source(src), image_url=src) if src else None,
        )
        if escalation is not None:
            scores["remote"] = escalation.remote_score
            result = self.build_result(
                escalation.score,
                ResultSource.REMOTE,
                DecisionStage.REMOTE_ML,
                heuristic_scores=scores,
                details=f"Remote ML score: {escalation.remote_score:.2f} (blended {escalation.score:.2f})",
                local_inconclusive=inconclusive,
            )
        else:
            result = self.build_result(
                local_score,
                ResultSource.LOCAL,
                DecisionStage.INITIAL_HEURISTICS,
                heuristic_scores=scores,
                details=format_heuristic_step("Host Score", local_score, self.local_threshold),
                local_inconclusive=inconclusive,
            )
        return self.store(key, result)
