"""Translate extraction payloads into domain batches."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError
from pydantic.alias_generators import to_snake

from fleetrecon.domain.model import (
    CandidateRecord,
    Confidence,
    DocumentSummary,
    ExtractionBatch,
    FieldConflict,
    FinancingType,
    PurchaseCondition,
    SourceFile,
    SuggestedType,
)

from .schema import ExtractedSourceFile, ExtractionPayload

if TYPE_CHECKING:
    from .schema import (
        ExtractedDocumentSummary,
        ExtractedEquipment,
        ExtractedFieldConflict,
    )

log = logging.getLogger(__name__)


class BatchPayloadError(ValueError):
    """Raised when a batch file cannot be read or does not match the schema."""


def _blank(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _source_file(entry: str | ExtractedSourceFile, base_dir: Path | None) -> SourceFile:
    if isinstance(entry, str):
        file_name, raw_path = entry, None
    else:
        file_name, raw_path = entry.file_name, entry.path
    path = Path(raw_path) if raw_path else None
    if path is not None and base_dir is not None and not path.is_absolute():
        path = base_dir / path
    return SourceFile(file_name=Path(file_name).name, path=path)


def translate_equipment(
    entry: ExtractedEquipment,
    *,
    base_dir: Path | None = None,
) -> CandidateRecord:
    return CandidateRecord(
        make=entry.make.strip(),
        model=entry.model.strip(),
        year=entry.year,
        serial_vin=_blank(entry.serial_vin),
        purchase_date=_blank(entry.purchase_date),
        purchase_price=entry.purchase_price,
        sales_tax=entry.sales_tax,
        freight_setup=entry.freight_setup,
        financing_type=FinancingType(entry.financing_type) if entry.financing_type else None,
        deposit_amount=entry.deposit_amount,
        financed_amount=entry.financed_amount,
        monthly_payment=entry.monthly_payment,
        term_months=entry.term_months,
        buyout_amount=entry.buyout_amount,
        purchase_condition=(
            PurchaseCondition(entry.purchase_condition) if entry.purchase_condition else None
        ),
        confidence=Confidence(entry.confidence),
        notes=_blank(entry.notes),
        source_files=tuple(_source_file(source, base_dir) for source in entry.source_files),
        source_document_indices=tuple(entry.source_document_indices),
        suggested_type=SuggestedType(entry.suggested_type) if entry.suggested_type else None,
        suggested_parent_index=entry.suggested_parent_index,
        suggested_category=_blank(entry.suggested_category),
    )


def translate_document_summary(entry: ExtractedDocumentSummary) -> DocumentSummary:
    return DocumentSummary(
        file_name=entry.file_name,
        fields_found=tuple(to_snake(name) for name in entry.fields_found),
    )


def translate_conflict(entry: ExtractedFieldConflict) -> FieldConflict:
    return FieldConflict(
        candidate_index=entry.candidate_index,
        field=to_snake(entry.field),
        values=tuple(entry.values),
        sources=tuple(entry.sources),
    )


def translate_payload(
    payload: ExtractionPayload,
    *,
    base_dir: Path | None = None,
) -> ExtractionBatch:
    return ExtractionBatch(
        candidates=tuple(
            translate_equipment(entry, base_dir=base_dir) for entry in payload.equipment
        ),
        documents=tuple(translate_document_summary(entry) for entry in payload.document_summaries),
        conflicts=tuple(translate_conflict(entry) for entry in payload.conflicts),
    )


def parse_batch(raw: str | bytes, *, base_dir: Path | None = None) -> ExtractionBatch:
    """Validate a JSON batch document and translate it."""

    try:
        payload = ExtractionPayload.model_validate_json(raw)
    except ValidationError as exc:
        raise BatchPayloadError(f"Invalid extraction batch: {exc}") from exc
    batch = translate_payload(payload, base_dir=base_dir)
    log.debug(
        "Parsed batch: candidates=%s, documents=%s, conflicts=%s",
        len(batch.candidates),
        len(batch.documents),
        len(batch.conflicts),
    )
    return batch


def load_batch(path: Path) -> ExtractionBatch:
    """Read a batch file; relative source file paths resolve against its directory."""

    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise BatchPayloadError(f"Cannot read batch file {path}: {exc}") from exc
    return parse_batch(raw, base_dir=path.parent)
