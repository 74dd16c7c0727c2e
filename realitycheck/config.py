"""
Central detection configuration.

Every tunable value of the cascade lives here as a typed, documented field.
Any field can be overridden at runtime via an environment variable of the
same name (case-insensitive), e.g.:

    IMAGE_LOCAL_AI_THRESHOLD=0.3 uvicorn realitycheck.main:app
    export REMOTE_API_KEY=sk-...

A `.env` file at the project root is loaded automatically.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_REMOTE_ENDPOINT = "https://api.realitycheck.ai/v1/classify"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,   # REMOTE_ENDPOINT == remote_endpoint
        extra="ignore",         # silently drop unknown env vars
    )

    # ------------------------------------------------------------------ #
    # Logging                                                             #
    # ------------------------------------------------------------------ #
    log_level: str = Field(
        "INFO", description="Root log level applied in main.py"
    )

    # ------------------------------------------------------------------ #
    # Result Cache                                                        #
    # ------------------------------------------------------------------ #
    cache_max_size: int = Field(
        200, description="Max entries per detector cache before oldest is evicted"
    )
    cache_ttl_sec: float = Field(
        300.0, description="Cached verdict lifetime (5 min)"
    )
    fingerprint_text_chars: int = Field(
        500, description="Leading characters of a text block that feed its fingerprint"
    )
    fingerprint_data_url_chars: int = Field(
        256, description="Leading characters of a data URL that feed its remote payload hash"
    )

    # ------------------------------------------------------------------ #
    # Remote Escalation Budgets (tokens per refill interval)              #
    # ------------------------------------------------------------------ #
    rate_limit_refill_sec: float = Field(
        60.0, description="Whole-bucket refill interval for every remote limiter"
    )
    text_remote_budget: dict[str, int] = Field(
        {"low": 5, "medium": 10, "high": 20},
        description="Remote text classifications per interval, per quality tier",
    )
    image_remote_budget: dict[str, int] = Field(
        {"low": 30, "medium": 60, "high": 90},
        description="Remote image classifications per interval, per quality tier",
    )
    video_remote_budget: dict[str, int] = Field(
        {"low": 5, "medium": 15, "high": 30},
        description="Remote video classifications per interval, per quality tier",
    )
    audio_remote_budget: dict[str, int] = Field(
        {"low": 5, "medium": 10, "high": 20},
        description="Remote audio classifications per interval, per quality tier",
    )

    # ------------------------------------------------------------------ #
    # Remote Backend                                                      #
    # ------------------------------------------------------------------ #
    remote_enabled: bool = Field(
        False, description="Default for DetectorOptions.remote_enabled"
    )
    remote_endpoint: str = Field(
        DEFAULT_REMOTE_ENDPOINT, description="Remote classification endpoint"
    )
    remote_api_key: str = Field(
        "", description="Bearer token / API key for the remote endpoint"
    )
    remote_timeout_sec: float = Field(
        15.0, description="Total timeout for one remote classification call"
    )
    remote_local_weight: float = Field(
        0.3, description="Weight of the local score in the remote blend"
    )
    remote_remote_weight: float = Field(
        0.7, description="Weight of the remote score in the remote blend"
    )
    remote_ai_threshold: float = Field(
        0.35, description="Verdict threshold applied to remote-sourced scores"
    )
    openai_model: str = Field(
        "gpt-4o-mini", description="Chat model used by the OpenAI adapter"
    )
    azure_deployment: str = Field(
        "gpt-5-1-chat", description="Deployment name used by the Azure OpenAI adapter"
    )
    azure_api_version: str = Field(
        "2024-10-21", description="Azure OpenAI Responses API version"
    )
    gemini_model: str = Field(
        "gemini-2.5-flash", description="Model used by the Gemini adapter"
    )
    gemini_temperature: float = Field(
        0.0, description="Sampling temperature for the Gemini adapter"
    )
    gemini_max_retries: int = Field(
        2, description="Total Gemini attempts on retryable HTTP status codes"
    )

    # ------------------------------------------------------------------ #
    # Confidence Buckets                                                  #
    # ------------------------------------------------------------------ #
    confidence_high_cut: float = Field(
        0.65, description="Score ≥ this → high confidence"
    )
    confidence_medium_cut: float = Field(
        0.35, description="Score ≥ this → medium confidence"
    )

    # ------------------------------------------------------------------ #
    # Text Detector                                                       #
    # ------------------------------------------------------------------ #
    text_min_chars: int = Field(
        80, description="Shorter text scores 0 and never escalates"
    )
    text_min_sentences: int = Field(
        3, description="Fewer sentences → score 0"
    )
    text_max_remote_chars: int = Field(
        2_000, description="Text is truncated to this length before escalation"
    )
    text_band_low: float = Field(0.15, description="Inconclusive band lower bound (exclusive)")
    text_band_high: float = Field(0.65, description="Inconclusive band upper bound (exclusive)")
    text_local_ai_threshold: float = Field(
        0.35, description="Verdict threshold for local text scores"
    )

    # ------------------------------------------------------------------ #
    # Image Detector                                                      #
    # ------------------------------------------------------------------ #
    image_band_low: float = Field(0.20, description="Inconclusive band lower bound (exclusive)")
    image_band_high: float = Field(0.65, description="Inconclusive band upper bound (exclusive)")
    image_local_ai_threshold: float = Field(
        0.25, description="Verdict threshold for local image scores"
    )
    image_visual_weight_medium: float = Field(
        0.75, description="Visual AI score multiplier at medium tier"
    )
    image_visual_weight_high: float = Field(
        0.85, description="Visual AI score multiplier at high tier"
    )
    exif_blend_weight: float = Field(
        0.15, description="Weight of the camera-metadata score when it is non-zero"
    )
    model_blend_weight: float = Field(
        0.7, description="Weight of the on-device model score over the local score"
    )

    # ------------------------------------------------------------------ #
    # Photorealism Pre-Filter                                             #
    # ------------------------------------------------------------------ #
    prefilter_size: int = Field(
        64, description="Side of the square RGBA buffer every analysis runs on"
    )
    photorealism_skip_threshold: float = Field(
        0.20, description="Pre-filter score below this → skip the image"
    )
    prefilter_model_weight: float = Field(
        0.7, description="High tier: weight of the model score in the pre-filter blend"
    )

    # ------------------------------------------------------------------ #
    # On-Device Model                                                     #
    # ------------------------------------------------------------------ #
    feature_model_max_side: int = Field(
        256, description="Feature model: buffers are downscaled to this longest side"
    )
    onnx_model_path: str = Field(
        "", description="ONNX classifier file; empty keeps the feature model"
    )
    onnx_input_width: int = Field(224, description="ONNX input tensor width")
    onnx_input_height: int = Field(224, description="ONNX input tensor height")
    onnx_layout: str = Field("NCHW", description="ONNX input layout: NCHW or NHWC")
    onnx_normalisation: str = Field(
        "imagenet", description="ONNX input normalisation: none, [0,1] or imagenet"
    )
    onnx_ai_class_index: int = Field(1, description="Index of the AI class in the ONNX output")
    onnx_activation: str = Field(
        "none", description="Applied to the ONNX output before indexing: none, sigmoid or softmax"
    )

    # ------------------------------------------------------------------ #
    # Metadata Parsers                                                    #
    # ------------------------------------------------------------------ #
    provenance_scan_bytes: int = Field(
        65_536, description="Bytes searched for the provenance XMP namespace URI"
    )
    provenance_label_scan_bytes: int = Field(
        4_096, description="Bytes searched for a bare provenance label in unknown formats"
    )
    provenance_score_adjustment: float = Field(
        -0.30, description="Score adjustment when a provenance manifest is present"
    )
    exif_absent_score: float = Field(
        0.25, description="AI score when no camera metadata could be parsed"
    )
    exif_generator_score: float = Field(
        0.9, description="AI score when the Software tag names a generator"
    )
    max_fetch_mb: int = Field(
        20, description="Max MB read by the default byte-fetch collaborator"
    )

    # ------------------------------------------------------------------ #
    # Video Detector                                                      #
    # ------------------------------------------------------------------ #
    video_band_low: float = Field(0.25, description="Inconclusive band lower bound (exclusive)")
    video_band_high: float = Field(0.75, description="Inconclusive band upper bound (exclusive)")
    video_local_ai_threshold: float = Field(
        0.45, description="Verdict threshold for local video scores"
    )
    video_frame_count: int = Field(
        5, description="Evenly spaced frames sampled per video"
    )
    video_frame_timeout_sec: float = Field(
        0.5, description="Upper bound on a single frame capture"
    )
    video_model_max_side: int = Field(
        192, description="Low tier: frames are scaled to this side for the model"
    )
    video_jpeg_quality: int = Field(
        80, description="JPEG quality for frames sent to the remote backend"
    )

    # ------------------------------------------------------------------ #
    # Audio Detector                                                      #
    # ------------------------------------------------------------------ #
    audio_band_low: float = Field(0.20, description="Inconclusive band lower bound (exclusive)")
    audio_band_high: float = Field(0.65, description="Inconclusive band upper bound (exclusive)")
    audio_local_ai_threshold: float = Field(
        0.45, description="Verdict threshold for local audio scores"
    )

    # ------------------------------------------------------------------ #
    # HTTP API                                                            #
    # ------------------------------------------------------------------ #
    max_image_data_url_chars: int = Field(
        2_800_000, description="Largest imageDataUrl accepted by /v1/classify"
    )
    max_image_hash_chars: int = Field(128, description="Largest imageHash accepted")
    max_url_chars: int = Field(2_048, description="Largest URL accepted")
    classify_ai_cut: float = Field(0.65, description="/v1/classify: score ≥ this → 'ai'")
    classify_human_cut: float = Field(0.35, description="/v1/classify: score ≤ this → 'human'")

    # ------------------------------------------------------------------ #
    # Derived byte-level properties (computed from MB fields)             #
    # ------------------------------------------------------------------ #
    @property
    def max_fetch_bytes(self) -> int:
        return self.max_fetch_mb * 1024 * 1024


# Single shared instance, import this everywhere.
settings = Settings()
