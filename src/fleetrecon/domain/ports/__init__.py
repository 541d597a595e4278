"""Domain port definitions for adapters."""

from __future__ import annotations

from .record_store import RecordNotFoundError, RecordStore

__all__ = ["RecordNotFoundError", "RecordStore"]
