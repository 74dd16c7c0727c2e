"""
Picks a remote adapter from the endpoint host.

  *.openai.azure.com, *.azure-api.net   -> AzureOpenAIAdapter
  api.openai.com, *.openai.com           -> OpenAIAdapter
  generativelanguage.googleapis.com      -> GeminiAdapter
  anything else                          -> GenericHttpAdapter
"""

import logging
from urllib.parse import urlparse

from realitycheck.config import DEFAULT_REMOTE_ENDPOINT
from realitycheck.integrations.remote.base import RemoteBackend
from realitycheck.integrations.remote.generic import GenericHttpAdapter
from realitycheck.integrations.remote.gemini import GEMINI_HOST, GeminiAdapter
from realitycheck.integrations.remote.openai import AzureOpenAIAdapter, OpenAIAdapter
from realitycheck.schemas.detection import ContentType, RemoteClassification, RemotePayload

logger = logging.getLogger(__name__)


def _hostname(endpoint: str) -> str:
    try:
        return (urlparse(endpoint).hostname or "").lower()
    except ValueError:
        return ""


def is_azure_endpoint(endpoint: str) -> bool:
    host = _hostname(endpoint)
    return host.endswith(".openai.azure.com") or host.endswith(".azure-api.net")


def is_openai_endpoint(endpoint: str) -> bool:
    host = _hostname(endpoint)
    return host == "api.openai.com" or host.endswith(".openai.com")


def is_gemini_endpoint(endpoint: str) -> bool:
    return _hostname(endpoint) == GEMINI_HOST


def create_remote_adapter(endpoint: str, api_key: str = "") -> RemoteBackend:
    endpoint = endpoint or DEFAULT_REMOTE_ENDPOINT
    if is_azure_endpoint(endpoint):
        return AzureOpenAIAdapter(api_key, base_url=endpoint)
    if is_openai_endpoint(endpoint):
        return OpenAIAdapter(api_key)
    if is_gemini_endpoint(endpoint):
        return GeminiAdapter(api_key)
    return GenericHttpAdapter(endpoint, api_key)


async def classify_remote(
    endpoint: str, api_key: str, content_type: ContentType, payload: RemotePayload
) -> RemoteClassification:
    """Default `remote_classify` hook: build the matching adapter and run one call."""
    adapter = create_remote_adapter(endpoint, api_key)
    logger.info(f"[REMOTE] {ContentType(content_type).value} -> {adapter.name}")
    return await adapter.classify(content_type, payload)
