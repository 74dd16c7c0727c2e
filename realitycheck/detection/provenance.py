"""
Content-provenance (C2PA) marker scanner.

Lightweight presence check only: the manifest's signature is never
validated. A manifest means the file passed through a provenance-aware
tool (camera, editor), which lowers the AI score.

Marker locations:
  - JPEG: APP11 segment carrying a JUMBF box labelled "c2pa"
  - PNG:  "caBX" ancillary chunk
  - any:  XMP dcterms:conformsTo pointing at the C2PA specification URI
"""

import struct
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Union

from realitycheck.config import settings
from realitycheck.core.data_url import decode_data_url

logger = logging.getLogger(__name__)

JUMBF_LABEL = b"c2pa"
XMP_URI = b"https://c2pa.org/specifications"
PNG_SIGNATURE = b"\x89PNG"
MIN_BYTES = 12


class ProvenancePresence(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ProvenanceResult:
    presence: ProvenancePresence
    score_adjustment: float


UNKNOWN = ProvenanceResult(ProvenancePresence.UNKNOWN, 0.0)
ABSENT = ProvenanceResult(ProvenancePresence.ABSENT, 0.0)


def _contains(data: bytes, pattern: bytes, limit: int) -> bool:
    return pattern in data[:limit]


def _has_jpeg_segment(data: bytes) -> bool:
    offset = 2
    while offset + 4 < len(data):
        if data[offset] != 0xFF:
            break
        marker = data[offset + 1]
        seg_len = (data[offset + 2] << 8) | data[offset + 3]
        if marker == 0xEB:
            segment = data[offset + 4:min(offset + 2 + seg_len, len(data))]
            if JUMBF_LABEL in segment:
                return True
        if marker == 0xDA:
            break
        offset += 2 + seg_len
    return False


def _has_png_chunk(data: bytes) -> bool:
    offset = 8
    while offset + 8 < len(data):
        (chunk_len,) = struct.unpack_from(">I", data, offset)
        chunk_type = data[offset + 4:offset + 8]
        if chunk_type == b"caBX":
            return True
        if chunk_type == b"IEND":
            break
        offset += 12 + chunk_len
    return False


def detect_provenance(source: Union[bytes, str]) -> ProvenanceResult:
    """Scan image bytes (or a data URL) for a provenance manifest."""
    data = decode_data_url(source) if isinstance(source, str) else source
    if not data or len(data) < MIN_BYTES:
        return UNKNOWN

    uri_limit = settings.provenance_scan_bytes
    if data[:2] == b"\xff\xd8":
        found = _has_jpeg_segment(data) or _contains(data, XMP_URI, uri_limit)
    elif data[:4] == PNG_SIGNATURE:
        found = _has_png_chunk(data) or _contains(data, XMP_URI, uri_limit)
    else:
        found = (
            _contains(data, XMP_URI, uri_limit)
            or _contains(data, JUMBF_LABEL, settings.provenance_label_scan_bytes)
        )

    if found:
        logger.info("[PROVENANCE] Content credentials marker found")
        return ProvenanceResult(ProvenancePresence.PRESENT, settings.provenance_score_adjustment)
    return ABSENT
