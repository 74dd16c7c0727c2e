"""
OpenAI-compatible adapters.

  - OpenAIAdapter:      Chat Completions in JSON mode (text only)
  - AzureOpenAIAdapter: Responses API with a strict JSON schema (text and
                        images), for Azure OpenAI and API Management gateways
"""

import logging
from typing import Any, List, Optional

from realitycheck.config import settings
from realitycheck.integrations import http_client as http_module
from realitycheck.integrations.remote import prompts
from realitycheck.integrations.remote.base import (
    UNSUPPORTED,
    RemoteBackend,
    RemoteClassificationError,
    parse_score_json,
)
from realitycheck.schemas.detection import ContentType, RemoteClassification, RemotePayload

logger = logging.getLogger(__name__)

OPENAI_BASE_URL = "https://api.openai.com/v1"

RESULT_SCHEMA = {
    "type": "json_schema",
    "name": "AIDetectionResult",
    "schema": {
        "type": "object",
        "properties": {
            "score": {"type": "number"},
            "label": {"type": "string"},
        },
        "required": ["score", "label"],
        "additionalProperties": False,
    },
    "strict": True,
}


class OpenAIAdapter(RemoteBackend):
    name = "openai"

    def __init__(self, api_key: str, model: str = None, base_url: str = OPENAI_BASE_URL):
        self.api_key = api_key
        self.model = model or settings.openai_model
        self.base_url = base_url.rstrip("/")

    async def classify(self, content_type: ContentType, payload: RemotePayload) -> RemoteClassification:
        if ContentType(content_type) != ContentType.TEXT or not payload.text:
            return UNSUPPORTED

        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": prompts.TEXT_SYSTEM_PROMPT},
                {"role": "user", "content": payload.text[:settings.text_max_remote_chars]},
            ],
            "response_format": {"type": "json_object"},
            "max_tokens": 64,
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        async with http_module.request_session() as sess:
            async with sess.post(f"{self.base_url}/chat/completions", json=body, headers=headers) as response:
                if response.status < 200 or response.status >= 300:
                    raise RemoteClassificationError("OpenAI API", response.status, response.reason or "")
                data = await response.json(content_type=None)

        try:
            raw = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            raw = "{}"
        return parse_score_json(raw)


class AzureOpenAIAdapter(RemoteBackend):
    """
    `base_url` includes the `/openai` path segment when applicable, e.g.
    https://{resource}.openai.azure.com/openai. Requests go to
    {base_url}/deployments/{deployment}/responses?api-version={api_version}.
    """
    name = "azure-openai"

    def __init__(self, api_key: str, base_url: str, deployment: str = None, api_version: str = None):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.deployment = deployment or settings.azure_deployment
        self.api_version = api_version or settings.azure_api_version

    @property
    def url(self) -> str:
        return f"{self.base_url}/deployments/{self.deployment}/responses?api-version={self.api_version}"

    def _build_input(self, content_type: ContentType, payload: RemotePayload) -> Optional[List[Any]]:
        if content_type in (ContentType.IMAGE, ContentType.VIDEO):
            images = payload.frames or [payload.image_data_url or payload.image_url]
            images = [i for i in images if i]
            if not images:
                return None
            user_content = [{"type": "input_image", "image_url": i} for i in images]
            is_video = content_type == ContentType.VIDEO and len(images) > 1
            user_content.append({
                "type": "input_text",
                "text": prompts.VIDEO_USER_PROMPT if is_video else prompts.IMAGE_USER_PROMPT,
            })
            system = prompts.VIDEO_SYSTEM_PROMPT if is_video else prompts.IMAGE_SYSTEM_PROMPT
            return [
                {"role": "system", "content": system},
                {"role": "user", "content": user_content},
            ]
        if content_type == ContentType.TEXT and payload.text:
            return [
                {"role": "system", "content": prompts.TEXT_SYSTEM_PROMPT},
                {"role": "user", "content": payload.text[:settings.text_max_remote_chars]},
            ]
        return None

    async def classify(self, content_type: ContentType, payload: RemotePayload) -> RemoteClassification:
        model_input = self._build_input(ContentType(content_type), payload)
        if model_input is None:
            return UNSUPPORTED

        body = {
            "model": self.deployment,
            "input": model_input,
            "text": {"format": RESULT_SCHEMA},
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        async with http_module.request_session() as sess:
            async with sess.post(self.url, json=body, headers=headers) as response:
                if response.status < 200 or response.status >= 300:
                    raise RemoteClassificationError("Azure OpenAI API", response.status, response.reason or "")
                data = await response.json(content_type=None)

        return parse_score_json(_output_text(data))


def _output_text(data: Any) -> str:
    """Pull the text answer out of a Responses API body."""
    if not isinstance(data, dict):
        return "{}"
    if isinstance(data.get("output_text"), str):
        return data["output_text"]
    for item in data.get("output") or []:
        if item.get("type") != "message":
            continue
        for part in item.get("content") or []:
            if part.get("type") == "output_text" and isinstance(part.get("text"), str):
                return part["text"]
    return "{}"
