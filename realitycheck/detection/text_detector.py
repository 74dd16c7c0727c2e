"""
Text detector: stylometric heuristics with remote escalation when inconclusive.

Signals (summed, capped at 1):
  - burstiness: generated prose has evenly sized sentences
  - average sentence length above 25 words
  - low type-token ratio
  - stock assistant phrases ("as an AI language model", ...)

These heuristics are conservative by construction; anything short or with
few sentences scores 0.
"""

import re
import logging
import statistics
from typing import List, Optional

from realitycheck.config import settings
from realitycheck.detection.base import Detector, format_heuristic_step
from realitycheck.detection.hashing import hash_text
from realitycheck.schemas.detection import (
    ContentType,
    DecisionStage,
    DetectionResult,
    DetectorOptions,
    RemotePayload,
    ResultSource,
)

logger = logging.getLogger(__name__)

FILLER_PHRASES = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"as an ai language model",
        r"as an ai assistant",
        r"i (don'?t|do not) have (personal )?feelings",
        r"i (don'?t|do not) have (the ability|access) to",
        r"certainly[,!]?\s+here('s| is)",
        r"i'?m happy to (help|assist)",
        r"of course[,!]?\s+here('s| is)",
        r"it('s| is) worth noting that",
        r"in (today'?s|the modern) (world|age|era|society)",
        r"ultimately[,.]?\s+it'?s (important|crucial|essential)",
    )
]

_SENTENCE_SPLIT = re.compile(r"[.!?]+")


def count_filler_phrases(text: str) -> int:
    return sum(1 for p in FILLER_PHRASES if p.search(text))


def split_sentences(text: str) -> List[str]:
    return [s.strip() for s in _SENTENCE_SPLIT.split(text) if len(s.strip()) > 5]


def type_token_ratio(text: str) -> float:
    tokens = text.lower().split()
    if not tokens:
        return 1.0
    return len(set(tokens)) / len(tokens)


def compute_local_text_score(text: str) -> float:
    trimmed = text.strip()
    if len(trimmed) < settings.text_min_chars:
        return 0.0

    sentences = split_sentences(trimmed)
    if len(sentences) < settings.text_min_sentences:
        return 0.0

    lengths = [len(s.split()) for s in sentences]
    sd = statistics.pstdev(lengths)
    avg_len = statistics.fmean(lengths)

    if sd < 3:
        burstiness = 0.3
    elif sd < 6:
        burstiness = 0.15
    else:
        burstiness = 0.0
    length_score = 0.15 if avg_len > 25 else 0.0
    ttr_score = 0.2 if type_token_ratio(trimmed) < 0.45 else 0.0
    filler_score = min(0.4, count_filler_phrases(trimmed) * 0.2)

    return min(1.0, burstiness + length_score + ttr_score + filler_score)


class TextDetector(Detector):
    content_type = ContentType.TEXT

    async def detect(self, content: str, options: Optional[DetectorOptions] = None) -> DetectionResult:
        options = options or DetectorOptions()
        text = content or ""
        key = self.cache_key(hash_text(text))

        cached = self.cache.get(key)
        if cached is not None:
            return cached

        local_score = compute_local_text_score(text)
        scores = {"local": local_score}
        inconclusive = self.in_band(local_score)

        escalation = await self.escalate(
            local_score,
            options,
            lambda: RemotePayload(text=text[:settings.text_max_remote_chars]),
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
                details=format_heuristic_step("Text Heuristics", local_score, self.local_threshold),
                local_inconclusive=inconclusive,
            )

        return self.store(key, result)
