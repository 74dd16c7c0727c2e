"""
Shared pytest fixtures for all test modules.

Pixel buffers are RGBA uint8 arrays shaped (H, W, 4), the format every
detector consumes. Remote calls never leave the process: strategies are
AsyncMocks and the aiohttp session is replaced by tests/mocks/http_mock.py.
"""

import io
from typing import Tuple
from unittest.mock import patch

import numpy as np
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from realitycheck.core.data_url import encode_data_url
from realitycheck.main import app


# ---------------------------------------------------------------------------
# Core infrastructure fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def client():
    """
    FastAPI TestClient running the real lifespan.

    http_client.initialize()/close() are patched so no aiohttp session is
    opened during startup.
    """
    with (
        patch("realitycheck.integrations.http_client.initialize"),
        patch("realitycheck.integrations.http_client.close"),
    ):
        with TestClient(app, raise_server_exceptions=False) as c:
            yield c


# ---------------------------------------------------------------------------
# Shared test-data helpers
# ---------------------------------------------------------------------------


def flat_pixels(color: Tuple[int, int, int] = (128, 128, 128), size: int = 64) -> np.ndarray:
    """A single-colour RGBA buffer, the cheapest possible "not a photo"."""
    px = np.empty((size, size, 4), dtype=np.uint8)
    px[..., :3] = color
    px[..., 3] = 255
    return px


def noise_pixels(size: int = 64, seed: int = 0) -> np.ndarray:
    """Uniform RGB noise: many colours, high entropy, sharp edges."""
    rng = np.random.default_rng(seed)
    px = rng.integers(0, 256, size=(size, size, 4), dtype=np.uint8)
    px[..., 3] = 255
    return px


def make_jpeg(pixels: np.ndarray = None, exif: Image.Exif = None, quality: int = 90) -> bytes:
    """Encode a buffer (default: 32×32 noise) as JPEG, optionally with EXIF."""
    if pixels is None:
        pixels = noise_pixels(32)
    img = Image.fromarray(np.ascontiguousarray(pixels[..., :3]))
    buf = io.BytesIO()
    if exif is not None:
        img.save(buf, format="JPEG", quality=quality, exif=exif)
    else:
        img.save(buf, format="JPEG", quality=quality)
    return buf.getvalue()


def make_jpeg_data_url(pixels: np.ndarray = None, exif: Image.Exif = None) -> str:
    return encode_data_url(make_jpeg(pixels, exif), "image/jpeg")


def camera_exif(make: str = "Canon", model: str = "EOS R5") -> Image.Exif:
    exif = Image.Exif()
    exif[0x010F] = make
    exif[0x0110] = model
    return exif


def generator_exif(software: str = "Stable Diffusion XL") -> Image.Exif:
    exif = Image.Exif()
    exif[0x0131] = software
    return exif


LONG_AI_TEXT = (
    "It is important to note that artificial intelligence has transformed many industries. "
    "Furthermore, it is worth mentioning that these systems continue to evolve rapidly. "
    "In conclusion, it's important to remember that technology plays a crucial role in our lives. "
    "Additionally, we must delve into the ethical considerations. "
    "Moreover, this comprehensive overview highlights the key aspects."
)

LONG_HUMAN_TEXT = (
    "Went to the market this morning and the fish guy was out again, third week running. "
    "Ended up grabbing some eggs instead. My neighbour says he moved his stall closer to "
    "the bridge but I didn't see him there either. Oh well, omelettes it is! "
    "Kids complained, obviously. Tomorrow I'll try the bakery on Fifth before it opens."
)
