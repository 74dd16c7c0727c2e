from realitycheck.schemas.detection import (
    ConfidenceLevel,
    ContentType,
    DecisionStage,
    DetectionResult,
    DetectorOptions,
    QualityTier,
    RemoteClassification,
    RemotePayload,
    ResultSource,
)
from realitycheck.schemas.classify import ClassifyRequest, ClassifyResponse, DetectRequest

__all__ = [
    "ConfidenceLevel",
    "ContentType",
    "DecisionStage",
    "DetectionResult",
    "DetectorOptions",
    "QualityTier",
    "RemoteClassification",
    "RemotePayload",
    "ResultSource",
    "ClassifyRequest",
    "ClassifyResponse",
    "DetectRequest",
]
