"""Generic JSON-POST adapter: the default wire contract for hosted classifiers."""

import logging

from realitycheck.integrations import http_client as http_module
from realitycheck.integrations.remote.base import RemoteBackend, RemoteClassificationError
from realitycheck.schemas.detection import ContentType, RemoteClassification, RemotePayload

logger = logging.getLogger(__name__)


class GenericHttpAdapter(RemoteBackend):
    """
    POSTs `{contentType, ...payload}` as JSON and reads `{score, label}` back.
    The Authorization header is omitted when no API key is configured.
    """
    name = "generic"

    def __init__(self, endpoint: str, api_key: str = ""):
        self.endpoint = endpoint
        self.api_key = api_key

    def _headers(self) -> dict:
        headers = {
            "Content-Type": "application/json",
            "X-RealityCheck-Request": "1",
        }
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def classify(self, content_type: ContentType, payload: RemotePayload) -> RemoteClassification:
        body = {
            "contentType": ContentType(content_type).value,
            **payload.model_dump(by_alias=True, exclude_none=True),
        }
        async with http_module.request_session() as sess:
            async with sess.post(self.endpoint, json=body, headers=self._headers()) as response:
                if response.status < 200 or response.status >= 300:
                    raise RemoteClassificationError("Remote adapter", response.status, response.reason or "")
                data = await response.json(content_type=None)

        if not isinstance(data, dict):
            data = {}
        score = data.get("score")
        label = data.get("label")
        return RemoteClassification(
            score=float(score) if isinstance(score, (int, float)) and not isinstance(score, bool) else 0.0,
            label=label if isinstance(label, str) else "unknown",
        )
