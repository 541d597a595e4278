"""Per-candidate working state of an import session."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING
from uuid import uuid4

from fleetrecon.domain.model import AttachmentAction, ImportMode
from fleetrecon.domain.reconciliation import (
    NO_ATTACHMENT_DUPLICATE,
    NO_DUPLICATE,
    AttachmentVerdict,
    DuplicateVerdict,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from fleetrecon.domain.model import CandidateRecord, EquipmentCategory
    from fleetrecon.domain.reconciliation import AttachmentDraft

MANUAL_SOURCE = "manual"


def new_item_id() -> str:
    return uuid4().hex


@dataclass(frozen=True, slots=True)
class ExistingParent:
    """Parent asset that already lives in the registry."""

    asset_id: str


@dataclass(frozen=True, slots=True)
class PendingParent:
    """Parent that is another item of the same session, not yet written."""

    item_id: str


type ParentRef = ExistingParent | PendingParent


def _empty_sources() -> Mapping[str, str]:
    return MappingProxyType({})


@dataclass(frozen=True, slots=True, kw_only=True)
class ImportSessionItem:
    """Value object for one surviving candidate.

    ``candidate`` holds the current (possibly edited or merged) values while
    ``original`` keeps the record as extracted so single fields can be reverted.
    """

    index: int
    candidate: CandidateRecord
    original: CandidateRecord
    category: EquipmentCategory
    item_id: str = field(default_factory=new_item_id)
    selected: bool = True
    mode: ImportMode = ImportMode.NEW
    verdict: DuplicateVerdict = NO_DUPLICATE
    parent: ParentRef | None = None
    attachment: AttachmentDraft | None = None
    attachment_verdict: AttachmentVerdict = NO_ATTACHMENT_DUPLICATE
    attachment_action: AttachmentAction = AttachmentAction.CREATE
    merged_from: tuple[str, ...] = ()
    field_sources: Mapping[str, str] = field(default_factory=_empty_sources)

    @property
    def name(self) -> str:
        if self.mode is ImportMode.ATTACHMENT and self.attachment and self.attachment.name:
            return self.attachment.name
        return self.candidate.display_name or f"Item {self.index + 1}"

    @property
    def is_resolved(self) -> bool:
        if not self.selected:
            return True
        return self.mode is not ImportMode.ATTACHMENT or self.parent is not None

    @property
    def writes_asset(self) -> bool:
        return self.selected and self.mode in (ImportMode.NEW, ImportMode.UPDATE_EXISTING)

    def source_for(self, field_name: str) -> str | None:
        return self.field_sources.get(field_name)
