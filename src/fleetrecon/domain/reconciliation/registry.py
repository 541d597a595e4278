"""Registry duplicate detection for a single candidate.

Matching policy:
- exact: normalized serials equal and non-empty
- potential/year: fuzzy make/model match and equal years
- potential/price: fuzzy make/model match and prices within the tolerance
- potential/date: fuzzy make/model match and purchase dates within the window

Records are scanned in store order; within one record the rules are tried in
the order above and the first record that satisfies any rule ends the scan.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fleetrecon.config.reconciliation import (
    DEFAULT_POTENTIAL_DATE_WINDOW_DAYS,
    DEFAULT_PRICE_TOLERANCE,
)
from fleetrecon.domain.model import DuplicateStatus, MatchReason

from .contracts import NO_DUPLICATE, DuplicateVerdict
from .diff import compute_backfillable_fields
from .matching import models_match
from .normalize import days_difference, normalize_serial, parse_date

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from fleetrecon.domain.model import CandidateRecord, RegistryRecord

log = logging.getLogger(__name__)


def _match_reason(
    candidate: CandidateRecord,
    record: RegistryRecord,
    *,
    price_tolerance: float,
    date_window_days: int,
) -> MatchReason | None:
    candidate_serial = normalize_serial(candidate.serial_vin)
    if candidate_serial and candidate_serial == normalize_serial(record.serial_vin):
        return MatchReason.SERIAL

    if not models_match(candidate.make, candidate.model, record.make, record.model):
        return None

    if candidate.year is not None and candidate.year == record.year:
        return MatchReason.YEAR

    if _prices_close(candidate.purchase_price, record.purchase_price, price_tolerance):
        return MatchReason.PRICE

    candidate_date = parse_date(candidate.purchase_date)
    record_date = parse_date(record.purchase_date)
    if (
        candidate_date is not None
        and record_date is not None
        and days_difference(candidate_date, record_date) <= date_window_days
    ):
        return MatchReason.DATE

    return None


def _prices_close(
    candidate_price: float | None,
    existing_price: float | None,
    tolerance: float,
) -> bool:
    if not candidate_price or not existing_price or existing_price <= 0:
        return False
    return abs(candidate_price - existing_price) / existing_price <= tolerance


def detect_registry_duplicate(
    candidate: CandidateRecord,
    registry: Iterable[RegistryRecord],
    *,
    price_tolerance: float = DEFAULT_PRICE_TOLERANCE,
    date_window_days: int = DEFAULT_POTENTIAL_DATE_WINDOW_DAYS,
    previous: DuplicateVerdict | None = None,
) -> DuplicateVerdict:
    """Classify ``candidate`` against the registry; never raises.

    When ``previous`` matched the same record, its ``will_apply`` toggles are
    carried over to the recomputed diff.
    """

    for record in registry:
        reason = _match_reason(
            candidate,
            record,
            price_tolerance=price_tolerance,
            date_window_days=date_window_days,
        )
        if reason is None:
            continue

        status = (
            DuplicateStatus.EXACT if reason is MatchReason.SERIAL else DuplicateStatus.POTENTIAL
        )
        toggles = _toggles_for(previous, record.id)
        verdict = DuplicateVerdict(
            status=status,
            reason=reason,
            matched_record_id=record.id,
            matched_display_name=record.display_name,
            matched_date=record.purchase_date,
            backfillable_fields=compute_backfillable_fields(record, candidate, previous=toggles),
        )
        log.debug(
            "Candidate %s matched record %s (status=%s, reason=%s)",
            candidate.display_name,
            record.id,
            status,
            reason,
        )
        return verdict

    return NO_DUPLICATE


def _toggles_for(previous: DuplicateVerdict | None, record_id: str) -> Mapping[str, bool] | None:
    if previous is None or previous.matched_record_id != record_id:
        return None
    return {diff.field: diff.will_apply for diff in previous.backfillable_fields}
