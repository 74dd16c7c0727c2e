from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ContentType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"


class QualityTier(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ConfidenceLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ResultSource(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"


class DecisionStage(str, Enum):
    INITIAL_HEURISTICS = "initial_heuristics"
    PRE_FILTER = "pre_filter"
    LOCAL_ML = "local_ml"
    REMOTE_ML = "remote_ml"


class DetectionResult(BaseModel):
    """Verdict for one piece of content. Immutable so it can be cached by value."""
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    content_type: ContentType
    is_ai_generated: bool
    confidence: ConfidenceLevel
    score: float = Field(ge=0.0, le=1.0)
    source: ResultSource
    decision_stage: Optional[DecisionStage] = None
    heuristic_scores: Dict[str, float] = Field(default_factory=dict)
    details: Optional[str] = None
    skipped_by_pre_filter: bool = False
    local_inconclusive: bool = False
    local_model_score: Optional[float] = None


class RemotePayload(BaseModel):
    """Body sent to a remote backend. Serialized with camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    text: Optional[str] = None
    image_data_url: Optional[str] = None
    image_hash: Optional[str] = None
    image_url: Optional[str] = None
    frames: Optional[List[str]] = None


class RemoteClassification(BaseModel):
    score: float
    label: str = "unknown"


RemoteClassifyFn = Callable[[str, str, ContentType, RemotePayload], Awaitable[RemoteClassification]]
FetchBytesFn = Callable[[str], Awaitable[Optional[bytes]]]


class DetectorOptions(BaseModel):
    """
    Per-call detector options.

    `remote_classify` and `fetch_bytes` are collaborator-provided strategies;
    the cascade never performs network I/O on its own. Without a
    `remote_classify` strategy no escalation happens.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    remote_enabled: bool = False
    quality: QualityTier = QualityTier.MEDIUM
    remote_endpoint: str = ""
    remote_api_key: str = ""
    remote_classify: Optional[RemoteClassifyFn] = None
    fetch_bytes: Optional[FetchBytesFn] = None
