"""Collapse fragment candidates into one record, field by field."""

from __future__ import annotations

from dataclasses import replace
from functools import reduce
from typing import TYPE_CHECKING, Final

from fleetrecon.domain.model import FinancingType

if TYPE_CHECKING:
    from collections.abc import Iterable

    from fleetrecon.domain.model import CandidateRecord, SourceFile

NOTES_SEPARATOR: Final[str] = "; "

_SCALAR_FIELDS: Final[tuple[str, ...]] = (
    "make",
    "model",
    "year",
    "serial_vin",
    "purchase_date",
    "purchase_price",
    "sales_tax",
    "freight_setup",
    "deposit_amount",
    "financed_amount",
    "monthly_payment",
    "term_months",
    "buyout_amount",
    "purchase_condition",
    "suggested_type",
    "suggested_category",
)


def _is_filled(value: object) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, int | float):
        return value != 0
    return True


def _merge_financing(
    primary: FinancingType | None,
    secondary: FinancingType | None,
) -> FinancingType | None:
    if primary not in (None, FinancingType.OWNED):
        return primary
    if secondary not in (None, FinancingType.OWNED):
        return secondary
    return primary or secondary


def _merge_files(
    primary: tuple[SourceFile, ...],
    secondary: tuple[SourceFile, ...],
) -> tuple[SourceFile, ...]:
    seen = {source.file_name for source in primary}
    merged = list(primary)
    for source in secondary:
        if source.file_name not in seen:
            seen.add(source.file_name)
            merged.append(source)
    return tuple(merged)


def _merge_notes(primary: str | None, secondary: str | None) -> str | None:
    parts: list[str] = []
    for note in (primary, secondary):
        if note and note.strip() and note.strip() not in parts:
            parts.append(note.strip())
    return NOTES_SEPARATOR.join(parts) or None


def merge_candidates(primary: CandidateRecord, secondary: CandidateRecord) -> CandidateRecord:
    """Fill the gaps of ``primary`` from ``secondary``; ``primary`` wins conflicts."""

    changes: dict[str, object] = {}
    for name in _SCALAR_FIELDS:
        primary_value = getattr(primary, name)
        if not _is_filled(primary_value):
            secondary_value = getattr(secondary, name)
            if _is_filled(secondary_value):
                changes[name] = secondary_value

    indices = dict.fromkeys(
        (*primary.source_document_indices, *secondary.source_document_indices)
    )
    parent_index = primary.suggested_parent_index
    if parent_index is None:
        parent_index = secondary.suggested_parent_index
    confidence = max(primary.confidence, secondary.confidence, key=lambda tier: tier.rank)

    return replace(
        primary,
        financing_type=_merge_financing(primary.financing_type, secondary.financing_type),
        source_files=_merge_files(primary.source_files, secondary.source_files),
        source_document_indices=tuple(indices),
        notes=_merge_notes(primary.notes, secondary.notes),
        confidence=confidence,
        suggested_parent_index=parent_index,
        **changes,  # pyright: ignore[reportArgumentType]
    )


def merge_fragments(
    primary: CandidateRecord,
    secondaries: Iterable[CandidateRecord],
) -> CandidateRecord:
    """Apply ``merge_candidates`` left to right across a fragment group."""

    return reduce(merge_candidates, secondaries, primary)
