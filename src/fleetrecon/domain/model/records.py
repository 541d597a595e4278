"""Equipment records exchanged with the extraction collaborator and the record store.

Everything in here is a frozen value object. Session code derives edited copies
with ``dataclasses.replace`` instead of mutating records in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .enums import (
    Confidence,
    EquipmentCategory,
    EquipmentStatus,
    FinancingType,
    PurchaseCondition,
)

if TYPE_CHECKING:
    from pathlib import Path

    from .enums import SuggestedType


type Scalar = str | int | float | None


@dataclass(frozen=True, slots=True, kw_only=True)
class SourceFile:
    """Reference to the document a candidate was extracted from."""

    file_name: str
    path: Path | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class CandidateRecord:
    """One extracted equipment description awaiting reconciliation."""

    make: str
    model: str
    year: int | None = None
    serial_vin: str | None = None
    purchase_date: str | None = None
    purchase_price: float | None = None
    sales_tax: float | None = None
    freight_setup: float | None = None
    financing_type: FinancingType | None = None
    deposit_amount: float | None = None
    financed_amount: float | None = None
    monthly_payment: float | None = None
    term_months: int | None = None
    buyout_amount: float | None = None
    purchase_condition: PurchaseCondition | None = None
    confidence: Confidence = Confidence.MEDIUM
    notes: str | None = None
    source_files: tuple[SourceFile, ...] = ()
    source_document_indices: tuple[int, ...] = ()
    suggested_type: SuggestedType | None = None
    suggested_parent_index: int | None = None
    suggested_category: str | None = None

    @property
    def display_name(self) -> str:
        return f"{self.make} {self.model}".strip()


@dataclass(frozen=True, slots=True, kw_only=True)
class RegistryRecord:
    """An asset already persisted in the fleet registry."""

    id: str
    make: str
    model: str
    name: str | None = None
    year: int | None = None
    serial_vin: str | None = None
    purchase_date: str | None = None
    purchase_price: float | None = None
    sales_tax: float | None = None
    freight_setup: float | None = None
    financing_type: FinancingType | str | None = None
    deposit_amount: float | None = None
    financed_amount: float | None = None
    monthly_payment: float | None = None
    term_months: int | None = None
    buyout_amount: float | None = None
    purchase_condition: PurchaseCondition | str | None = None
    category: str | None = None

    @property
    def display_name(self) -> str:
        if self.name:
            return self.name
        parts = [str(self.year) if self.year else "", self.make, self.model]
        return " ".join(part for part in parts if part)


@dataclass(frozen=True, slots=True, kw_only=True)
class AttachmentRecord:
    """A sub-component persisted against one parent asset."""

    id: str
    equipment_id: str
    name: str
    value: float = 0.0
    serial_number: str | None = None
    description: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class DocumentRecord:
    owner_id: str
    file_name: str


@dataclass(frozen=True, slots=True, kw_only=True)
class DocumentSummary:
    """Per-document summary reported by the extraction service."""

    file_name: str
    fields_found: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class FieldConflict:
    """Diverging values for one field of one candidate across source documents."""

    candidate_index: int
    field: str
    values: tuple[Scalar, ...]
    sources: tuple[str, ...]


@dataclass(frozen=True, slots=True, kw_only=True)
class ExtractionBatch:
    """Everything the extraction collaborator hands over for one import."""

    candidates: tuple[CandidateRecord, ...]
    documents: tuple[DocumentSummary, ...] = ()
    conflicts: tuple[FieldConflict, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class NewAssetPayload:
    """Complete row written by ``RecordStore.create_asset``."""

    name: str
    make: str
    model: str
    year: int
    category: EquipmentCategory | str
    purchase_date: str
    serial_vin: str | None = None
    status: EquipmentStatus = EquipmentStatus.ACTIVE
    purchase_price: float = 0.0
    sales_tax: float = 0.0
    freight_setup: float = 0.0
    other_cap_ex: float = 0.0
    cogs_percent: float = 80.0
    replacement_cost_new: float = 0.0
    financing_type: FinancingType = FinancingType.OWNED
    deposit_amount: float = 0.0
    financed_amount: float = 0.0
    monthly_payment: float = 0.0
    term_months: int = 0
    buyout_amount: float = 0.0
    purchase_condition: PurchaseCondition = PurchaseCondition.NEW
    notes: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class AttachmentPayload:
    name: str
    value: float = 0.0
    serial_number: str | None = None
    description: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class AssetChanges:
    """Partial update for an existing asset; only listed fields are written."""

    values: dict[str, Scalar] = field(default_factory=dict[str, "Scalar"])

    def __bool__(self) -> bool:
        return bool(self.values)
