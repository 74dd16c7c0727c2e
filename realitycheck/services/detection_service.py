"""
Detection request helpers: detector options with settings defaults, the
default byte-fetch collaborator, and request-to-content conversion.
"""

import asyncio
import logging
from typing import Any, List, Optional

from fastapi import HTTPException

from realitycheck.config import settings
from realitycheck.core.data_url import decode_data_url
from realitycheck.detection.audio_detector import AudioContent
from realitycheck.detection.frames import InMemoryFrameSource, decode_to_rgba
from realitycheck.detection.hashing import hash_frames
from realitycheck.detection.image_detector import ImageContent
from realitycheck.detection.video_detector import VideoContent
from realitycheck.integrations import http_client as http_module
from realitycheck.integrations.remote.factory import classify_remote
from realitycheck.schemas.classify import ClassifyRequest, DetectRequest
from realitycheck.schemas.detection import (
    ContentType,
    DetectorOptions,
    FetchBytesFn,
    QualityTier,
    RemoteClassifyFn,
)

logger = logging.getLogger(__name__)


async def fetch_bytes(url: str, max_size: int = None) -> Optional[bytes]:
    """
    Download `url` for metadata parsing. Returns None on a non-200 status or
    when the body exceeds `max_size`; transport errors propagate to the caller.
    """
    max_size = max_size or settings.max_fetch_bytes
    async with http_module.request_session() as session:
        async with session.get(url) as response:
            if response.status != 200:
                logger.info(f"[FETCH] {url[:80]} returned status {response.status}")
                return None
            declared = response.content_length
            if declared is not None and declared > max_size:
                logger.info(f"[FETCH] {url[:80]} too large ({declared} bytes)")
                return None
            content = await response.read()
            if len(content) > max_size:
                logger.info(f"[FETCH] {url[:80]} too large ({len(content)} bytes)")
                return None
            return content


def build_detector_options(
    remote_enabled: Optional[bool] = None,
    quality: Optional[QualityTier] = None,
    remote_endpoint: Optional[str] = None,
    remote_api_key: Optional[str] = None,
    remote_classify: Optional[RemoteClassifyFn] = classify_remote,
    fetch_bytes: Optional[FetchBytesFn] = fetch_bytes,
) -> DetectorOptions:
    """Field-by-field options builder; anything not given comes from settings."""
    return DetectorOptions(
        remote_enabled=settings.remote_enabled if remote_enabled is None else remote_enabled,
        quality=quality or QualityTier.MEDIUM,
        remote_endpoint=remote_endpoint if remote_endpoint is not None else settings.remote_endpoint,
        remote_api_key=remote_api_key if remote_api_key is not None else settings.remote_api_key,
        remote_classify=remote_classify,
        fetch_bytes=fetch_bytes,
    )


def content_from_request(req: DetectRequest) -> Any:
    """Turn a /detect body into the content object its detector expects."""
    content_type = ContentType(req.content_type)
    src = req.image_data_url or req.url or ""

    if content_type == ContentType.TEXT:
        if req.text is None:
            raise HTTPException(status_code=400, detail="Missing 'text' for text detection")
        return req.text

    if not src:
        raise HTTPException(status_code=400, detail=f"Missing 'url' for {content_type.value} detection")
    if src.startswith("data:") and ";base64," not in src[:200]:
        raise HTTPException(status_code=400, detail="Only base64 data URLs are supported")

    if content_type == ContentType.IMAGE:
        return ImageContent(src=src, width=req.width, height=req.height)
    if content_type == ContentType.VIDEO:
        return VideoContent(src=src)
    return AudioContent(src=src)


async def frames_from_data_urls(frames: List[str]) -> InMemoryFrameSource:
    """Decode JPEG/PNG frame data URLs into an in-memory source, one second per frame."""
    side = settings.video_model_max_side
    decoded = []
    for data_url in frames:
        data = decode_data_url(data_url)
        if data is None:
            raise HTTPException(status_code=400, detail="Frames must be base64 data URLs")
        pixels = await asyncio.to_thread(decode_to_rgba, data, side, side)
        if pixels is None:
            raise HTTPException(status_code=400, detail="Undecodable frame")
        decoded.append(pixels)
    return InMemoryFrameSource(decoded, duration=float(len(decoded)))


async def content_from_classify_request(req: ClassifyRequest) -> Any:
    """Map the generic remote payload onto detector content (local cascade only)."""
    content_type = ContentType(req.content_type)

    if content_type == ContentType.TEXT:
        if not req.text:
            raise HTTPException(status_code=400, detail="Missing 'text'")
        return req.text

    src = req.image_data_url or req.image_url or ""
    if content_type == ContentType.IMAGE:
        if not src:
            raise HTTPException(status_code=400, detail="Missing 'imageDataUrl' or 'imageUrl'")
        return ImageContent(src=src)
    if content_type == ContentType.VIDEO:
        if req.frames:
            return VideoContent(
                src=src or req.frames[0],
                frame_source=await frames_from_data_urls(req.frames),
                fingerprint=hash_frames([src, *req.frames]),
            )
        if not src:
            raise HTTPException(status_code=400, detail="Missing 'frames' or 'imageUrl'")
        return VideoContent(src=src)
    return AudioContent(src=src)
