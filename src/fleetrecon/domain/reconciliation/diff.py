"""Field reconciliation diff between a registry row and a candidate."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .contracts import FieldDiff
from .field_policy import FIELD_POLICIES

if TYPE_CHECKING:
    from collections.abc import Mapping

    from fleetrecon.domain.model import CandidateRecord, RegistryRecord, Scalar


def _plain(value: object) -> Scalar:
    # StrEnum members compare equal to their value; store the plain string
    if isinstance(value, str):
        return str(value)
    return value  # pyright: ignore[reportReturnType]


def compute_backfillable_fields(
    existing: RegistryRecord,
    candidate: CandidateRecord,
    *,
    previous: Mapping[str, bool] | None = None,
) -> tuple[FieldDiff, ...]:
    """Return the fields that are empty on ``existing`` and filled on ``candidate``.

    ``previous`` carries caller toggles (field -> will_apply) from an earlier diff
    against the same record so that recomputation keeps them.
    """

    diffs: list[FieldDiff] = []
    for policy in FIELD_POLICIES:
        existing_value = _plain(getattr(existing, policy.field))
        candidate_value = _plain(getattr(candidate, policy.field))
        if not policy.is_empty(existing_value) or policy.is_empty(candidate_value):
            continue
        will_apply = True if previous is None else previous.get(policy.field, True)
        diffs.append(
            FieldDiff(
                field=policy.field,
                label=policy.label,
                existing_value=existing_value,
                candidate_value=candidate_value,
                will_apply=will_apply,
            )
        )
    return tuple(diffs)
