"""Caller-facing review session wrapping the pure reducers."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fleetrecon.config.reconciliation import ReconciliationConfig
from fleetrecon.domain.model import ImportMode
from fleetrecon.domain.reconciliation import check_attachment_duplicate

from . import state
from .commit import CommitExecutor
from .items import ExistingParent, PendingParent

if TYPE_CHECKING:
    from fleetrecon.domain.model import (
        AttachmentAction,
        EquipmentCategory,
        ExtractionBatch,
        Scalar,
    )
    from fleetrecon.domain.ports import RecordStore
    from fleetrecon.domain.reconciliation import AttachmentVerdict, FragmentGroup

    from .commit import CommitResult
    from .items import ImportSessionItem, ParentRef
    from .state import ImportSession

log = logging.getLogger(__name__)


class ReviewSession:
    """Holds the current ``ImportSession`` and the store it will be committed to.

    Every action replaces ``state`` with the result of one reducer, so callers
    can keep references to older snapshots for undo or rendering.
    """

    def __init__(
        self,
        store: RecordStore,
        session: ImportSession,
        *,
        config: ReconciliationConfig | None = None,
    ) -> None:
        self.store = store
        self.state = session
        self.config = config or session.config

    @classmethod
    async def open(
        cls,
        store: RecordStore,
        batch: ExtractionBatch,
        *,
        config: ReconciliationConfig | None = None,
    ) -> ReviewSession:
        """Load the registry from ``store`` and start a session for ``batch``."""

        effective_config = config or ReconciliationConfig()
        registry = await store.list_assets()
        log.debug("Loaded %s registry record(s) for review", len(registry))
        session = state.start_session(batch, registry, config=effective_config)
        return cls(store, session, config=effective_config)

    # --- read side -------------------------------------------------------------

    @property
    def items(self) -> tuple[ImportSessionItem, ...]:
        return self.state.items

    @property
    def fragment_groups(self) -> tuple[FragmentGroup, ...]:
        return self.state.fragment_groups

    def item(self, item_id: str) -> ImportSessionItem:
        return self.state.item(item_id)

    def unresolved_items(self) -> tuple[ImportSessionItem, ...]:
        return state.unresolved_items(self.state)

    # --- actions ---------------------------------------------------------------

    def set_mode(self, item_id: str, mode: ImportMode) -> None:
        self.state = state.apply_mode_change(self.state, item_id, mode)

    def set_parent(self, item_id: str, parent: ParentRef | None) -> None:
        self.state = state.apply_parent(self.state, item_id, parent)

    def set_parent_asset(self, item_id: str, asset_id: str) -> None:
        self.set_parent(item_id, ExistingParent(asset_id))

    def set_parent_item(self, item_id: str, parent_item_id: str) -> None:
        self.set_parent(item_id, PendingParent(parent_item_id))

    def edit_field(self, item_id: str, field_name: str, value: Scalar) -> None:
        self.state = state.apply_field_edit(self.state, item_id, field_name, value)

    def revert_field(self, item_id: str, field_name: str) -> None:
        self.state = state.apply_field_revert(self.state, item_id, field_name)

    def edit_attachment(self, item_id: str, **changes: str | float | None) -> None:
        self.state = state.apply_attachment_edit(self.state, item_id, **changes)

    def set_attachment_action(self, item_id: str, action: AttachmentAction) -> None:
        self.state = state.apply_attachment_action(self.state, item_id, action)

    def merge_fragment_group(self, group: FragmentGroup) -> None:
        self.state = state.apply_merge(self.state, group)

    def merge_all_fragment_groups(self) -> int:
        """Merge every pending fragment group, returning how many were merged."""

        merged = 0
        while self.state.fragment_groups:
            self.merge_fragment_group(self.state.fragment_groups[0])
            merged += 1
        return merged

    def dismiss_fragment_group(self, group: FragmentGroup) -> None:
        self.state = state.apply_dismiss_fragment_group(self.state, group)

    def toggle_select(self, item_id: str) -> None:
        item = self.state.item(item_id)
        self.state = state.apply_selection(self.state, item_id, selected=not item.selected)

    def select_all(self, *, selected: bool = True) -> None:
        self.state = state.apply_select_all(self.state, selected=selected)

    def set_category(self, item_id: str, category: EquipmentCategory | str) -> None:
        self.state = state.apply_category(self.state, item_id, category)

    def toggle_backfill(self, item_id: str, field_name: str) -> None:
        item = self.state.item(item_id)
        current = next(
            (diff for diff in item.verdict.backfillable_fields if diff.field == field_name),
            None,
        )
        if current is None:
            return
        self.state = state.apply_backfill_toggle(
            self.state, item_id, field_name, will_apply=not current.will_apply
        )

    # --- store-backed actions --------------------------------------------------

    async def refresh_attachment_duplicate(self, item_id: str) -> AttachmentVerdict | None:
        """Re-check an attachment item against the attachments of its parent.

        Only parents that already exist in the registry can hold attachments.
        The verdict is dropped if the item moved to another parent meanwhile.
        """

        item = self.state.item(item_id)
        if item.mode is not ImportMode.ATTACHMENT:
            return None
        checked_parent = item.parent
        parent_id = self._registry_parent_id(checked_parent)
        if parent_id is None:
            return None
        verdict = await check_attachment_duplicate(
            self.store, parent_id, item.attachment, item.candidate
        )
        self.state = state.apply_attachment_verdict(
            self.state, item_id, verdict, parent=checked_parent
        )
        return verdict

    def _registry_parent_id(self, parent: ParentRef | None) -> str | None:
        match parent:
            case ExistingParent(asset_id=asset_id):
                return asset_id
            case PendingParent(item_id=parent_item_id):
                return self.state.matched_parent_id(parent_item_id)
            case _:
                return None

    async def commit(self, *, attach_documents: bool | None = None) -> CommitResult:
        if attach_documents is None:
            attach_documents = self.config.attach_documents
        executor = CommitExecutor(self.store, attach_documents=attach_documents)
        return await executor.execute(self.state)
