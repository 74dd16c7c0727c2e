from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from realitycheck.config import settings
from realitycheck.schemas.detection import ContentType, QualityTier


class DetectRequest(BaseModel):
    """Body of POST /detect. `url` may be an http(s) URL or a data URL."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    content_type: ContentType
    text: Optional[str] = None
    url: Optional[str] = Field(None, max_length=settings.max_image_data_url_chars)
    image_data_url: Optional[str] = Field(None, max_length=settings.max_image_data_url_chars)
    width: int = Field(0, ge=0)
    height: int = Field(0, ge=0)
    quality: QualityTier = QualityTier.MEDIUM
    remote_enabled: Optional[bool] = None


class ClassifyRequest(BaseModel):
    """Body of POST /v1/classify, the generic remote wire contract."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    content_type: ContentType
    text: Optional[str] = None
    image_data_url: Optional[str] = Field(None, max_length=settings.max_image_data_url_chars)
    image_hash: Optional[str] = Field(None, max_length=settings.max_image_hash_chars)
    image_url: Optional[str] = Field(None, max_length=settings.max_url_chars)
    frames: Optional[List[str]] = None

    @field_validator("image_data_url")
    @classmethod
    def _must_be_data_url(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.startswith("data:"):
            raise ValueError("imageDataUrl must be a data: URL")
        return v


class ClassifyResponse(BaseModel):
    score: float
    label: str
