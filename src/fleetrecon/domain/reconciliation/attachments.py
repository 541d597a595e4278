"""Duplicate detection for attachments scoped to one parent asset."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from fleetrecon.domain.model import DuplicateStatus

from .contracts import NO_ATTACHMENT_DUPLICATE, AttachmentVerdict
from .matching import attachment_name_matches

if TYPE_CHECKING:
    from collections.abc import Iterable

    from fleetrecon.domain.model import AttachmentRecord, CandidateRecord
    from fleetrecon.domain.ports import RecordStore

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True, kw_only=True)
class AttachmentDraft:
    """Editable attachment fields of a session item in attachment mode."""

    name: str | None = None
    value: float | None = None
    serial_number: str | None = None
    description: str | None = None

    @classmethod
    def from_candidate(cls, candidate: CandidateRecord) -> AttachmentDraft:
        return cls(
            name=candidate.display_name or None,
            value=candidate.purchase_price,
            serial_number=candidate.serial_vin,
            description=candidate.notes,
        )


def _lookup_keys(
    draft: AttachmentDraft | None,
    candidate: CandidateRecord,
) -> tuple[str | None, str | None]:
    name = draft.name if draft is not None and draft.name else candidate.display_name
    serial = (
        draft.serial_number if draft is not None and draft.serial_number else candidate.serial_vin
    )
    return name, serial


def find_attachment_duplicate(
    draft: AttachmentDraft | None,
    candidate: CandidateRecord,
    attachments: Iterable[AttachmentRecord],
) -> AttachmentRecord | None:
    """Return the first stored attachment that matches the draft, if any."""

    name, serial = _lookup_keys(draft, candidate)
    for attachment in attachments:
        if attachment_name_matches(name, serial, attachment):
            return attachment
    return None


def verdict_for(match: AttachmentRecord | None) -> AttachmentVerdict:
    if match is None:
        return NO_ATTACHMENT_DUPLICATE
    return AttachmentVerdict(
        status=DuplicateStatus.EXACT,
        matched_attachment_id=match.id,
        matched_name=match.name,
    )


async def check_attachment_duplicate(
    store: RecordStore,
    parent_id: str,
    draft: AttachmentDraft | None,
    candidate: CandidateRecord,
) -> AttachmentVerdict:
    """Fetch the parent's attachments and classify the draft against them."""

    attachments = await store.list_attachments(parent_id)
    match = find_attachment_duplicate(draft, candidate, attachments)
    if match is not None:
        log.info(
            "Attachment %s duplicates %s on asset %s",
            draft.name if draft is not None else candidate.display_name,
            match.id,
            parent_id,
        )
    return verdict_for(match)
