"""
Pixel buffers: decoding, resizing and JPEG encoding, plus frame sources.

Buffers are RGBA `numpy.ndarray`s of shape (H, W, 4), dtype uint8.

A frame source is anything that satisfies `FrameSource`; the video detector
only ever talks to that protocol. Two implementations ship here:
  - InMemoryFrameSource: a list of already-decoded frames (tests, hosts that
    capture frames themselves)
  - VideoFileFrameSource: a local video file read through OpenCV
"""

import io
import asyncio
import logging
import threading
from typing import List, Optional, Protocol

import cv2
import numpy as np
from PIL import Image

from realitycheck.core.data_url import encode_data_url

logger = logging.getLogger(__name__)


def decode_to_rgba(data: bytes, width: int, height: int) -> Optional[np.ndarray]:
    """Decode an encoded image and scale it to a `width`×`height` RGBA buffer."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            rgba = img.convert("RGBA").resize((width, height), Image.Resampling.BILINEAR)
            return np.asarray(rgba, dtype=np.uint8).copy()
    except Exception as e:
        logger.warning(f"[PIXELS] Could not decode image bytes: {e}")
        return None


def resize_rgba(pixels: np.ndarray, width: int, height: int) -> np.ndarray:
    if pixels.shape[1] == width and pixels.shape[0] == height:
        return pixels
    img = Image.fromarray(np.ascontiguousarray(pixels, dtype=np.uint8))
    return np.asarray(img.resize((width, height), Image.Resampling.BILINEAR), dtype=np.uint8)


def encode_jpeg_data_url(pixels: np.ndarray, quality: int = 80) -> str:
    buf = io.BytesIO()
    Image.fromarray(np.ascontiguousarray(pixels, dtype=np.uint8)).convert("RGB").save(buf, format="JPEG", quality=quality)
    return encode_data_url(buf.getvalue(), "image/jpeg")


class FrameSource(Protocol):
    duration: float
    width: int
    height: int

    async def capture(self, timestamp: float, width: int, height: int) -> Optional[np.ndarray]:
        ...


class InMemoryFrameSource:
    """Serves pre-decoded frames spread evenly over `duration` seconds."""

    def __init__(self, frames: List[np.ndarray], duration: float):
        self.frames = frames
        self.duration = duration
        self.height, self.width = (frames[0].shape[:2] if frames else (0, 0))

    async def capture(self, timestamp: float, width: int, height: int) -> Optional[np.ndarray]:
        if not self.frames or self.duration <= 0:
            return None
        idx = min(len(self.frames) - 1, int(timestamp / self.duration * len(self.frames)))
        return resize_rgba(self.frames[idx], width, height)


class VideoFileFrameSource:
    """Seeks a local video file with OpenCV. Captures run in a worker thread."""

    def __init__(self, path: str):
        self.path = path
        self._cap = cv2.VideoCapture(path)
        self._lock = threading.Lock()
        if not self._cap.isOpened():
            logger.warning(f"[VIDEO] Could not open {path}")
            self.duration, self.width, self.height = 0.0, 0, 0
            return
        fps = self._cap.get(cv2.CAP_PROP_FPS) or 0.0
        total_frames = self._cap.get(cv2.CAP_PROP_FRAME_COUNT) or 0.0
        self.duration = total_frames / fps if fps > 0 else 0.0
        self.width = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        self.height = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))

    def _read_at(self, timestamp: float, width: int, height: int) -> Optional[np.ndarray]:
        with self._lock:
            self._cap.set(cv2.CAP_PROP_POS_MSEC, timestamp * 1000)
            ret, frame = self._cap.read()
        if not ret:
            return None
        frame = cv2.resize(frame, (width, height), interpolation=cv2.INTER_AREA)
        return cv2.cvtColor(frame, cv2.COLOR_BGR2RGBA)

    async def capture(self, timestamp: float, width: int, height: int) -> Optional[np.ndarray]:
        return await asyncio.to_thread(self._read_at, timestamp, width, height)

    def release(self) -> None:
        with self._lock:
            self._cap.release()
