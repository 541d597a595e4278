"""Intra-batch fragment grouping.

Responsibilities of this stage:
- find candidates in one import batch that describe the same physical asset
  (an invoice and a finance agreement for one machine, for example)
- report them as ``FragmentGroup`` values; merging is a separate, explicit step
- avoid persistence lookups

Grouping is greedy and pairwise: a candidate consumed as a fragment is never
compared again, and a primary is never reconsidered as someone else's
fragment. Transitive chains are not inferred.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Final

from fleetrecon.config.reconciliation import DEFAULT_FRAGMENT_DATE_WINDOW_DAYS
from fleetrecon.domain.model import FinancingType

from .contracts import FragmentGroup
from .matching import models_match
from .normalize import days_difference, normalize_key, normalize_serial, parse_date

if TYPE_CHECKING:
    from collections.abc import Sequence

    from fleetrecon.domain.model import CandidateRecord

log = logging.getLogger(__name__)

REASON_SAME_SERIAL: Final[str] = "same serial/VIN"
REASON_COMPLEMENTARY: Final[str] = "complementary documents"
REASON_SIMILAR_DATES: Final[str] = "same make/model with similar dates"
REASON_SHARED_DOCUMENT: Final[str] = "likely fragments of same item"


def _has_purchase_data(record: CandidateRecord) -> bool:
    return bool(record.purchase_price)


def _has_financing_data(record: CandidateRecord) -> bool:
    if record.financing_type not in (None, FinancingType.OWNED):
        return True
    return any(
        (
            record.deposit_amount,
            record.financed_amount,
            record.monthly_payment,
            record.term_months,
            record.buyout_amount,
        )
    )


def _complementary(first: CandidateRecord, second: CandidateRecord) -> bool:
    def purchase_only(record: CandidateRecord) -> bool:
        return _has_purchase_data(record) and not _has_financing_data(record)

    def financing_only(record: CandidateRecord) -> bool:
        return _has_financing_data(record) and not _has_purchase_data(record)

    return (purchase_only(first) and financing_only(second)) or (
        financing_only(first) and purchase_only(second)
    )


def _years_compatible(first: CandidateRecord, second: CandidateRecord) -> bool:
    return first.year is None or second.year is None or first.year == second.year


def _dates_compatible(first: CandidateRecord, second: CandidateRecord, window_days: int) -> bool:
    first_date = parse_date(first.purchase_date)
    second_date = parse_date(second.purchase_date)
    if first_date is None or second_date is None:
        return True
    return days_difference(first_date, second_date) <= window_days


def _same_serial(first: CandidateRecord, second: CandidateRecord) -> bool:
    first_serial = normalize_serial(first.serial_vin)
    return bool(first_serial) and first_serial == normalize_serial(second.serial_vin)


def _same_maker_shared_document(first: CandidateRecord, second: CandidateRecord) -> bool:
    first_make = normalize_key(first.make)
    if not first_make or first_make != normalize_key(second.make):
        return False
    return bool(set(first.source_document_indices) & set(second.source_document_indices))


def fragment_reason(
    first: CandidateRecord,
    second: CandidateRecord,
    *,
    date_window_days: int = DEFAULT_FRAGMENT_DATE_WINDOW_DAYS,
) -> str | None:
    """Return why ``second`` looks like a fragment of ``first``, or ``None``."""

    if _same_serial(first, second):
        return REASON_SAME_SERIAL

    years_ok = _years_compatible(first, second)
    if (
        years_ok
        and models_match(first.make, first.model, second.make, second.model)
        and _dates_compatible(first, second, date_window_days)
    ):
        if _complementary(first, second):
            return REASON_COMPLEMENTARY
        return REASON_SIMILAR_DATES

    if years_ok and _same_maker_shared_document(first, second):
        return REASON_SHARED_DOCUMENT
    return None


def group_fragments(
    candidates: Sequence[CandidateRecord],
    *,
    date_window_days: int = DEFAULT_FRAGMENT_DATE_WINDOW_DAYS,
) -> tuple[FragmentGroup, ...]:
    """Group batch indices that likely describe the same asset."""

    consumed: set[int] = set()
    groups: list[FragmentGroup] = []

    for primary_index, primary in enumerate(candidates):
        if primary_index in consumed:
            continue
        duplicates: list[int] = []
        reasons: list[str] = []
        for other_index in range(primary_index + 1, len(candidates)):
            if other_index in consumed:
                continue
            reason = fragment_reason(
                primary,
                candidates[other_index],
                date_window_days=date_window_days,
            )
            if reason is None:
                continue
            duplicates.append(other_index)
            consumed.add(other_index)
            if reason not in reasons:
                reasons.append(reason)

        if duplicates:
            consumed.add(primary_index)
            groups.append(
                FragmentGroup(
                    primary_index=primary_index,
                    duplicate_indices=tuple(duplicates),
                    reasons=tuple(reasons),
                )
            )

    if groups:
        log.info("Found %s fragment group(s) in batch of %s", len(groups), len(candidates))
    return tuple(groups)
