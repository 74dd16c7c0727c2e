"""
Detection routes: /detect and /v1/classify

/detect runs the full cascade for one item (remote escalation follows the
request's `remoteEnabled`, falling back to settings). /v1/classify speaks the
generic remote wire contract and answers from the local cascade only, so a
RealityCheck deployment can serve as another client's remote endpoint.
"""

import logging

from fastapi import APIRouter, Request

from realitycheck.config import settings
from realitycheck.detection.pipeline import DetectionPipeline
from realitycheck.schemas.classify import ClassifyRequest, ClassifyResponse, DetectRequest
from realitycheck.services.detection_service import (
    build_detector_options,
    content_from_classify_request,
    content_from_request,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Detection"])


def _pipeline(request: Request) -> DetectionPipeline:
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        pipeline = DetectionPipeline()
        request.app.state.pipeline = pipeline
    return pipeline


def classify_label(score: float) -> str:
    if score >= settings.classify_ai_cut:
        return "ai"
    if score <= settings.classify_human_cut:
        return "human"
    return "uncertain"


@router.post("/detect")
async def detect(body: DetectRequest, request: Request):
    """
    Detect AI-generated content in text, images, video or audio.
    """
    content = content_from_request(body)
    options = build_detector_options(remote_enabled=body.remote_enabled, quality=body.quality)

    result = await _pipeline(request).analyze(body.content_type, content, options)
    logger.info(
        f"[DETECT] {body.content_type.value} -> score={result.score:.3f} "
        f"stage={result.decision_stage.value} source={result.source.value}"
    )
    return result.model_dump(by_alias=True, mode="json")


@router.post("/v1/classify", response_model=ClassifyResponse)
async def classify(body: ClassifyRequest, request: Request):
    content = await content_from_classify_request(body)
    options = build_detector_options(remote_enabled=False, remote_classify=None)

    result = await _pipeline(request).analyze(body.content_type, content, options)
    return ClassifyResponse(score=result.score, label=classify_label(result.score))
