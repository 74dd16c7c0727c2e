"""
Remote classification backend contract.

An adapter maps the cascade's generic (content type, payload) request onto
one vendor's wire protocol and returns a generic (score, label) result.
Transport failures and non-2xx responses raise; detectors catch them and
refund the rate-limit token.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any

from realitycheck.schemas.detection import ContentType, RemoteClassification, RemotePayload

logger = logging.getLogger(__name__)

UNSUPPORTED = RemoteClassification(score=0.5, label="unsupported")


class RemoteClassificationError(Exception):
    """Raised when a remote backend answers with a non-2xx status."""

    def __init__(self, backend: str, status: int, reason: str = ""):
        self.backend = backend
        self.status = status
        super().__init__(f"{backend} HTTP {status}: {reason}".rstrip(": "))


class RemoteBackend(ABC):
    name: str = "remote"

    @abstractmethod
    async def classify(self, content_type: ContentType, payload: RemotePayload) -> RemoteClassification:
        ...


def parse_score_json(raw: Any, default_score: float = 0.5, default_label: str = "uncertain") -> RemoteClassification:
    """Parse a model's `{"score", "label"}` JSON answer; malformed output yields the defaults."""
    try:
        parsed = json.loads(raw) if isinstance(raw, str) else raw
    except (TypeError, ValueError):
        logger.warning(f"[REMOTE] Unparseable model output: {str(raw)[:120]}")
        parsed = {}
    if not isinstance(parsed, dict):
        parsed = {}

    score = parsed.get("score")
    label = parsed.get("label")
    if isinstance(score, (int, float)) and not isinstance(score, bool):
        score = max(0.0, min(1.0, float(score)))
    else:
        score = default_score
    return RemoteClassification(
        score=score,
        label=label if isinstance(label, str) else default_label,
    )
