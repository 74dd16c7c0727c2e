"""
Gemini adapter built on the google-genai SDK.

The SDK client is synchronous, so each call runs in a worker thread.
Structured output is requested with `response_schema`, which lets the SDK
hand back a parsed RemoteClassification.
"""

import asyncio
import logging
from typing import List, Optional

from google import genai
from google.genai import types

from realitycheck.config import settings
from realitycheck.core.data_url import decode_data_url
from realitycheck.integrations.remote import prompts
from realitycheck.integrations.remote.base import UNSUPPORTED, RemoteBackend, parse_score_json
from realitycheck.schemas.detection import ContentType, RemoteClassification, RemotePayload

logger = logging.getLogger(__name__)

GEMINI_HOST = "generativelanguage.googleapis.com"


def _mime_type(data_url: str) -> str:
    header = data_url.split(",", 1)[0]
    mime = header[len("data:"):].split(";", 1)[0]
    return mime or "image/jpeg"


def _image_parts(sources: List[str]) -> List[types.Part]:
    parts = []
    for src in sources:
        if src.startswith("data:"):
            data = decode_data_url(src)
            if data is not None:
                parts.append(types.Part.from_bytes(data=data, mime_type=_mime_type(src)))
        elif src:
            parts.append(types.Part.from_uri(file_uri=src, mime_type="image/jpeg"))
    return parts


class GeminiAdapter(RemoteBackend):
    name = "gemini"

    def __init__(self, api_key: str, model: str = None, client: Optional[genai.Client] = None):
        self.model = model or settings.gemini_model
        self.client = client or genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(
                timeout=int(settings.remote_timeout_sec * 1000),
                retry_options=types.HttpRetryOptions(
                    attempts=settings.gemini_max_retries,
                    http_status_codes=[408, 429, 500, 502, 503, 504],
                ),
            ),
        )

    def _build_contents(self, content_type: ContentType, payload: RemotePayload):
        """Returns (system_instruction, contents) or None when there is nothing to send."""
        if content_type in (ContentType.IMAGE, ContentType.VIDEO):
            sources = payload.frames or [payload.image_data_url or payload.image_url]
            parts = _image_parts([s for s in sources if s])
            if not parts:
                return None
            if content_type == ContentType.VIDEO and len(parts) > 1:
                return prompts.VIDEO_SYSTEM_PROMPT, [*parts, prompts.VIDEO_USER_PROMPT]
            return prompts.IMAGE_SYSTEM_PROMPT, [*parts, prompts.IMAGE_USER_PROMPT]
        if content_type == ContentType.TEXT and payload.text:
            return prompts.TEXT_SYSTEM_PROMPT, [payload.text[:settings.text_max_remote_chars]]
        return None

    def _generate(self, system_instruction: str, contents: list):
        config = types.GenerateContentConfig(
            system_instruction=system_instruction,
            temperature=settings.gemini_temperature,
            response_mime_type="application/json",
            response_schema=RemoteClassification,
        )
        return self.client.models.generate_content(
            model=self.model,
            contents=contents,
            config=config,
        )

    async def classify(self, content_type: ContentType, payload: RemotePayload) -> RemoteClassification:
        built = self._build_contents(ContentType(content_type), payload)
        if built is None:
            return UNSUPPORTED
        system_instruction, contents = built

        response = await asyncio.to_thread(self._generate, system_instruction, contents)

        parsed = getattr(response, "parsed", None)
        if isinstance(parsed, RemoteClassification):
            return RemoteClassification(score=max(0.0, min(1.0, parsed.score)), label=parsed.label)
        return parse_score_json(getattr(response, "text", None) or "{}")
