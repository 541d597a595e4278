"""Equipment domain model."""

from __future__ import annotations

from .enums import (
    AttachmentAction,
    Confidence,
    DuplicateStatus,
    EquipmentCategory,
    EquipmentStatus,
    FinancingType,
    ImportMode,
    MatchReason,
    PurchaseCondition,
    SuggestedType,
)
from .records import (
    AssetChanges,
    AttachmentPayload,
    AttachmentRecord,
    CandidateRecord,
    DocumentRecord,
    DocumentSummary,
    ExtractionBatch,
    FieldConflict,
    NewAssetPayload,
    RegistryRecord,
    Scalar,
    SourceFile,
)

__all__ = [
    "AssetChanges",
    "AttachmentAction",
    "AttachmentPayload",
    "AttachmentRecord",
    "CandidateRecord",
    "Confidence",
    "DocumentRecord",
    "DocumentSummary",
    "DuplicateStatus",
    "EquipmentCategory",
    "EquipmentStatus",
    "ExtractionBatch",
    "FieldConflict",
    "FinancingType",
    "ImportMode",
    "MatchReason",
    "NewAssetPayload",
    "PurchaseCondition",
    "RegistryRecord",
    "Scalar",
    "SourceFile",
    "SuggestedType",
]
