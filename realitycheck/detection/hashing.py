"""
Content fingerprints for the detection cache layer.

A fingerprint is a 32-bit djb2-xor hash rendered as lowercase hex. It is not
cryptographic; it only has to be cheap and stable so that repeated sightings
of the same content hit the cache. Prefix fingerprints of data URLs identify
a payload to a remote backend (`imageHash`).

Cache keys for media must cover the whole content, so they use `hash_media`
and `hash_bytes` (SHA-256 over the full source or buffer).
"""

import hashlib

import numpy as np

from realitycheck.config import settings


def fingerprint(value: str) -> str:
    """djb2-xor over the string's code points, kept to 32 bits."""
    h = 5381
    for ch in value:
        h = (((h << 5) + h) ^ ord(ch)) & 0xFFFFFFFF
    return format(h, "x")


def hash_text(text: str) -> str:
    return fingerprint(text[:settings.fingerprint_text_chars].strip())


def hash_data_url(data_url: str) -> str:
    return fingerprint(data_url[:settings.fingerprint_data_url_chars])


def hash_url(url: str) -> str:
    return fingerprint(url)


def hash_source(src: str) -> str:
    """Pick the payload fingerprint that fits a media source string."""
    if src.startswith("data:"):
        return hash_data_url(src)
    return hash_url(src)


def hash_bytes(data: bytes) -> str:
    """SHA-256 of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def hash_media(src: str) -> str:
    """Cache fingerprint of a media source: URLs by value, data URLs by their full payload."""
    if src.startswith("data:"):
        return hash_bytes(src.encode("utf-8"))
    return hash_url(src)


def hash_pixels(pixels: np.ndarray) -> str:
    """SHA-256 over the shape and every byte of a pixel buffer."""
    h = hashlib.sha256(str(pixels.shape).encode())
    h.update(np.ascontiguousarray(pixels).tobytes())
    return h.hexdigest()


def hash_frames(frames: list) -> str:
    """SHA-256 over an ordered list of frame data URLs."""
    h = hashlib.sha256()
    for frame in frames:
        h.update(frame.encode("utf-8"))
        h.update(b"\n")
    return h.hexdigest()
