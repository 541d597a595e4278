"""SQLAlchemy adapter package for fleetrecon."""

from __future__ import annotations

from .mappings import (
    create_all_tables,
    equipment_attachment_table,
    equipment_document_table,
    equipment_table,
    metadata,
)
from .record_store import (
    SqlAlchemyRecordStore,
    StartupError,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyRecordStore",
    "StartupError",
    "create_all_tables",
    "equipment_attachment_table",
    "equipment_document_table",
    "equipment_table",
    "is_started",
    "metadata",
    "shutdown",
    "startup",
]
