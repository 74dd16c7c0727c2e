"""
Top-level detection pipeline: public entry point for hosts and the HTTP API.

Holds one detector per content type. The on-device model backend is handed
to the pipeline explicitly and shared with the image and video detectors;
with no backend the cascade simply skips the on-device stage.
"""

import logging
from typing import Any, Dict, Optional

from realitycheck.detection.audio_detector import AudioDetector
from realitycheck.detection.base import Detector
from realitycheck.detection.image_detector import ImageDetector
from realitycheck.detection.model_backend import ModelBackend
from realitycheck.detection.text_detector import TextDetector
from realitycheck.detection.video_detector import VideoDetector
from realitycheck.schemas.detection import ContentType, DetectionResult, DetectorOptions

logger = logging.getLogger(__name__)


class DetectionPipeline:
    def __init__(
        self,
        backend: Optional[ModelBackend] = None,
        text_detector: Optional[Detector] = None,
        image_detector: Optional[Detector] = None,
        video_detector: Optional[Detector] = None,
        audio_detector: Optional[Detector] = None,
    ):
        self.backend = backend
        self._detectors: Dict[ContentType, Detector] = {
            ContentType.TEXT: text_detector or TextDetector(),
            ContentType.IMAGE: image_detector or ImageDetector(backend=backend),
            ContentType.VIDEO: video_detector or VideoDetector(backend=backend),
            ContentType.AUDIO: audio_detector or AudioDetector(),
        }

    def detector_for(self, content_type: ContentType) -> Detector:
        return self._detectors[ContentType(content_type)]

    def register_detector(self, detector: Detector) -> None:
        """Replace the detector for `detector.content_type`."""
        logger.info(f"[PIPELINE] Registered {type(detector).__name__} for {detector.content_type.value}")
        self._detectors[detector.content_type] = detector

    async def analyze(
        self, content_type: ContentType, content: Any, options: Optional[DetectorOptions] = None
    ) -> DetectionResult:
        return await self.detector_for(content_type).detect(content, options or DetectorOptions())

    async def analyze_text(self, text: str, options: Optional[DetectorOptions] = None) -> DetectionResult:
        return await self.analyze(ContentType.TEXT, text, options)

    async def analyze_image(self, image: Any, options: Optional[DetectorOptions] = None) -> DetectionResult:
        return await self.analyze(ContentType.IMAGE, image, options)

    async def analyze_video(self, video: Any, options: Optional[DetectorOptions] = None) -> DetectionResult:
        return await self.analyze(ContentType.VIDEO, video, options)

    async def analyze_audio(self, audio: Any, options: Optional[DetectorOptions] = None) -> DetectionResult:
        return await self.analyze(ContentType.AUDIO, audio, options)
