"""Result types produced by the reconciliation detectors.

This module intentionally holds only value objects: verdicts, field diffs and
fragment groups. The detectors that build them live in sibling modules.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from fleetrecon.domain.model import DuplicateStatus

if TYPE_CHECKING:
    from fleetrecon.domain.model import MatchReason, Scalar


@dataclass(frozen=True, slots=True, kw_only=True)
class FieldDiff:
    """One registry field that can be backfilled from the candidate."""

    field: str
    label: str
    existing_value: Scalar
    candidate_value: Scalar
    will_apply: bool = True


@dataclass(frozen=True, slots=True, kw_only=True)
class DuplicateVerdict:
    """Classification of a candidate against the fleet registry."""

    status: DuplicateStatus = DuplicateStatus.NONE
    reason: MatchReason | None = None
    matched_record_id: str | None = None
    matched_display_name: str | None = None
    matched_date: str | None = None
    backfillable_fields: tuple[FieldDiff, ...] = ()

    @property
    def is_match(self) -> bool:
        return self.status is not DuplicateStatus.NONE

    @property
    def applied_fields(self) -> tuple[FieldDiff, ...]:
        return tuple(diff for diff in self.backfillable_fields if diff.will_apply)

    def with_apply(self, field_name: str, *, will_apply: bool) -> DuplicateVerdict:
        diffs = tuple(
            replace(diff, will_apply=will_apply) if diff.field == field_name else diff
            for diff in self.backfillable_fields
        )
        return replace(self, backfillable_fields=diffs)


NO_DUPLICATE = DuplicateVerdict()


@dataclass(frozen=True, slots=True, kw_only=True)
class AttachmentVerdict:
    """Whether a candidate attachment already exists on its parent asset."""

    status: DuplicateStatus = DuplicateStatus.NONE
    matched_attachment_id: str | None = None
    matched_name: str | None = None

    @property
    def is_match(self) -> bool:
        return self.status is not DuplicateStatus.NONE


NO_ATTACHMENT_DUPLICATE = AttachmentVerdict()


@dataclass(frozen=True, slots=True, kw_only=True)
class FragmentGroup:
    """Batch candidates believed to describe one physical asset.

    Indices refer to the original candidate sequence of the batch.
    """

    primary_index: int
    duplicate_indices: tuple[int, ...]
    reasons: tuple[str, ...]

    @property
    def reason(self) -> str:
        return ", ".join(self.reasons)

    @property
    def indices(self) -> tuple[int, ...]:
        return (self.primary_index, *self.duplicate_indices)
