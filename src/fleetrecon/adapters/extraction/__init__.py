"""Extraction service batch adapter."""

from __future__ import annotations

from .schema import ExtractionPayload
from .translator import BatchPayloadError, load_batch, parse_batch, translate_payload

__all__ = [
    "BatchPayloadError",
    "ExtractionPayload",
    "load_batch",
    "parse_batch",
    "translate_payload",
]
