"""Import session aggregate and the reducers that evolve it.

Every reducer takes an ``ImportSession`` and returns a new one; nothing is
mutated in place. The legal mode table lives in ``transition_mode``:

- ``skip`` clears the selection, every other mode sets it
- ``update_existing`` needs a matched registry record
- entering ``attachment`` seeds the attachment draft and resets its verdict
- leaving ``attachment`` drops the parent, draft and attachment verdict
- an item in ``attachment`` mode can never be another item's parent
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import TYPE_CHECKING, Final

from fleetrecon.config.reconciliation import ReconciliationConfig
from fleetrecon.domain.model import (
    AttachmentAction,
    DuplicateStatus,
    EquipmentCategory,
    FinancingType,
    ImportMode,
    PurchaseCondition,
    SuggestedType,
)
from fleetrecon.domain.reconciliation import (
    BACKFILL_FIELDS,
    MATCH_FIELDS,
    NO_ATTACHMENT_DUPLICATE,
    AttachmentDraft,
    detect_registry_duplicate,
    group_fragments,
    merge_fragments,
    resolve_category,
)

from .errors import (
    InvalidAttachmentActionError,
    InvalidModeTransitionError,
    InvalidParentError,
    ReconciliationError,
    UnknownFieldError,
    UnknownItemError,
)
from .items import (
    MANUAL_SOURCE,
    ExistingParent,
    ImportSessionItem,
    ParentRef,
    PendingParent,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from fleetrecon.domain.model import (
        CandidateRecord,
        DocumentSummary,
        ExtractionBatch,
        FieldConflict,
        RegistryRecord,
        Scalar,
    )
    from fleetrecon.domain.reconciliation import (
        AttachmentVerdict,
        DuplicateVerdict,
        FragmentGroup,
    )

log = logging.getLogger(__name__)

EDITABLE_FIELDS: Final[frozenset[str]] = frozenset(
    {"make", "model", "year", "notes", *MATCH_FIELDS, *BACKFILL_FIELDS}
)
_INTEGER_FIELDS: Final[frozenset[str]] = frozenset({"year", "term_months"})
_AMOUNT_FIELDS: Final[frozenset[str]] = frozenset(
    {
        "purchase_price",
        "sales_tax",
        "freight_setup",
        "deposit_amount",
        "financed_amount",
        "monthly_payment",
        "buyout_amount",
    }
)
_SOURCE_FIELDS: Final[tuple[str, ...]] = ("make", "model", "year", *BACKFILL_FIELDS)


@dataclass(frozen=True, slots=True, kw_only=True)
class ImportSession:
    """All working state of one import, in original batch order."""

    items: tuple[ImportSessionItem, ...]
    registry: tuple[RegistryRecord, ...] = ()
    fragment_groups: tuple[FragmentGroup, ...] = ()
    documents: tuple[DocumentSummary, ...] = ()
    conflicts: tuple[FieldConflict, ...] = ()
    config: ReconciliationConfig = field(default_factory=ReconciliationConfig)

    def item(self, item_id: str) -> ImportSessionItem:
        for item in self.items:
            if item.item_id == item_id:
                return item
        raise UnknownItemError(item_id)

    def find(self, item_id: str) -> ImportSessionItem | None:
        for item in self.items:
            if item.item_id == item_id:
                return item
        return None

    def item_at(self, index: int) -> ImportSessionItem | None:
        """Return the item created from batch position ``index`` if it survives."""

        for item in self.items:
            if item.index == index:
                return item
        return None

    @property
    def selected_items(self) -> tuple[ImportSessionItem, ...]:
        return tuple(item for item in self.items if item.selected)

    @property
    def unresolved_items(self) -> tuple[ImportSessionItem, ...]:
        return tuple(
            item
            for item in self.items
            if not item.is_resolved or (item.selected and not self.parent_resolves(item))
        )

    def matched_parent_id(self, parent_item_id: str) -> str | None:
        """Registry id a pending parent already matched, unless it is an attachment."""

        parent = self.find(parent_item_id)
        if parent is None or parent.mode is ImportMode.ATTACHMENT:
            return None
        return parent.verdict.matched_record_id

    def parent_resolves(self, item: ImportSessionItem) -> bool:
        """Whether a commit can find a registry asset for ``item``'s parent."""

        match item.parent:
            case ExistingParent():
                return True
            case PendingParent(item_id=parent_item_id):
                parent = self.find(parent_item_id)
                if parent is None or parent.mode is ImportMode.ATTACHMENT:
                    return False
                return parent.writes_asset or self.matched_parent_id(parent_item_id) is not None
            case _:
                return item.mode is not ImportMode.ATTACHMENT

    def with_item(self, updated: ImportSessionItem) -> ImportSession:
        items = tuple(
            updated if item.item_id == updated.item_id else item for item in self.items
        )
        return replace(self, items=items)


def unresolved_items(session: ImportSession) -> tuple[ImportSessionItem, ...]:
    """Selected items that still block a commit."""

    return session.unresolved_items


# --- session start -----------------------------------------------------------------


def initial_mode(candidate: CandidateRecord, verdict: DuplicateVerdict) -> ImportMode:
    if candidate.suggested_type is SuggestedType.ATTACHMENT:
        return ImportMode.ATTACHMENT
    if verdict.status is DuplicateStatus.EXACT:
        return ImportMode.UPDATE_EXISTING if verdict.backfillable_fields else ImportMode.SKIP
    if verdict.status is DuplicateStatus.POTENTIAL and verdict.backfillable_fields:
        return ImportMode.UPDATE_EXISTING
    return ImportMode.NEW


def seed_field_sources(
    candidate: CandidateRecord,
    conflicts: Iterable[FieldConflict],
) -> Mapping[str, str]:
    """Attribute extracted fields to the document they came from."""

    sources: dict[str, str] = {}
    if len(candidate.source_files) == 1:
        file_name = candidate.source_files[0].file_name
        for name in _SOURCE_FIELDS:
            value = getattr(candidate, name)
            if value not in (None, ""):
                sources[name] = file_name
    for conflict in conflicts:
        if conflict.sources:
            sources[conflict.field] = conflict.sources[0]
    return MappingProxyType(sources)


def _conflicts_for(conflicts: Iterable[FieldConflict], index: int) -> list[FieldConflict]:
    return [conflict for conflict in conflicts if conflict.candidate_index == index]


def _verdict_for(
    candidate: CandidateRecord,
    registry: Sequence[RegistryRecord],
    config: ReconciliationConfig,
    previous: DuplicateVerdict | None = None,
) -> DuplicateVerdict:
    return detect_registry_duplicate(
        candidate,
        registry,
        price_tolerance=config.price_tolerance,
        date_window_days=config.potential_date_window_days,
        previous=previous,
    )


def start_session(
    batch: ExtractionBatch,
    registry: Sequence[RegistryRecord],
    *,
    config: ReconciliationConfig | None = None,
) -> ImportSession:
    """Build the initial session state for a freshly extracted batch."""

    effective_config = config or ReconciliationConfig()
    registry_records = tuple(registry)
    items: list[ImportSessionItem] = []
    for index, candidate in enumerate(batch.candidates):
        verdict = _verdict_for(candidate, registry_records, effective_config)
        mode = initial_mode(candidate, verdict)
        items.append(
            ImportSessionItem(
                index=index,
                candidate=candidate,
                original=candidate,
                category=resolve_category(
                    candidate.suggested_category, candidate.make, candidate.model
                ),
                selected=mode is not ImportMode.SKIP,
                mode=mode,
                verdict=verdict,
                attachment=(
                    AttachmentDraft.from_candidate(candidate)
                    if mode is ImportMode.ATTACHMENT
                    else None
                ),
                field_sources=seed_field_sources(
                    candidate, _conflicts_for(batch.conflicts, index)
                ),
            )
        )

    session = ImportSession(
        items=tuple(items),
        registry=registry_records,
        fragment_groups=group_fragments(
            batch.candidates, date_window_days=effective_config.fragment_date_window_days
        ),
        documents=batch.documents,
        conflicts=batch.conflicts,
        config=effective_config,
    )
    for item in session.items:
        if item.mode is ImportMode.ATTACHMENT:
            parent = _suggested_parent(session, item)
            if parent is not None:
                session = session.with_item(replace(item, parent=parent))

    log.info(
        "Started import session: items=%s, duplicates=%s, fragment_groups=%s",
        len(session.items),
        sum(1 for item in session.items if item.verdict.is_match),
        len(session.fragment_groups),
    )
    return session


def _suggested_parent(session: ImportSession, item: ImportSessionItem) -> ParentRef | None:
    index = item.candidate.suggested_parent_index
    if index is None or index == item.index:
        return None
    target = session.item_at(index)
    if target is None or target.mode is ImportMode.ATTACHMENT:
        return None
    return PendingParent(target.item_id)


# --- mode and selection --------------------------------------------------------------


def _active_mode(item: ImportSessionItem) -> ImportMode:
    if item.verdict.is_match and item.verdict.backfillable_fields:
        return ImportMode.UPDATE_EXISTING
    return ImportMode.NEW


def _detach_children(session: ImportSession, parent_item_id: str) -> ImportSession:
    for item in session.items:
        if item.parent == PendingParent(parent_item_id):
            log.info("Cleared parent of %s: parent item became an attachment", item.name)
            session = session.with_item(replace(item, parent=None))
    return session


def transition_mode(
    session: ImportSession,
    item: ImportSessionItem,
    mode: ImportMode,
) -> ImportSessionItem:
    """Return ``item`` moved to ``mode`` following the legal-state table."""

    if mode is item.mode:
        if mode is not ImportMode.SKIP and not item.selected:
            return replace(item, selected=True)
        return item
    if mode is ImportMode.UPDATE_EXISTING and not item.verdict.is_match:
        raise InvalidModeTransitionError(item.item_id, mode, "no matching registry record")

    updated = replace(item, mode=mode, selected=mode is not ImportMode.SKIP)
    if mode is ImportMode.ATTACHMENT:
        return replace(
            updated,
            attachment=AttachmentDraft.from_candidate(item.candidate),
            attachment_verdict=NO_ATTACHMENT_DUPLICATE,
            attachment_action=AttachmentAction.CREATE,
            parent=_suggested_parent(session, item),
        )
    if item.mode is ImportMode.ATTACHMENT:
        return replace(
            updated,
            attachment=None,
            attachment_verdict=NO_ATTACHMENT_DUPLICATE,
            attachment_action=AttachmentAction.CREATE,
            parent=None,
        )
    return updated


def apply_mode_change(session: ImportSession, item_id: str, mode: ImportMode) -> ImportSession:
    item = session.item(item_id)
    session = session.with_item(transition_mode(session, item, mode))
    if mode is ImportMode.ATTACHMENT and item.mode is not ImportMode.ATTACHMENT:
        session = _detach_children(session, item_id)
    return session


def apply_selection(session: ImportSession, item_id: str, *, selected: bool) -> ImportSession:
    """Select or deselect an item; selecting a skipped item reactivates it."""

    item = session.item(item_id)
    if selected and item.mode is ImportMode.SKIP:
        return session.with_item(replace(item, mode=_active_mode(item), selected=True))
    return session.with_item(replace(item, selected=selected))


def apply_select_all(session: ImportSession, *, selected: bool) -> ImportSession:
    """Bulk (de)selection; skipped items stay skipped and unselected."""

    items = tuple(
        item if item.mode is ImportMode.SKIP else replace(item, selected=selected)
        for item in session.items
    )
    return replace(session, items=items)


def apply_category(
    session: ImportSession,
    item_id: str,
    category: EquipmentCategory | str,
) -> ImportSession:
    item = session.item(item_id)
    return session.with_item(replace(item, category=EquipmentCategory(category)))


# --- parents and attachments -------------------------------------------------------


def apply_parent(session: ImportSession, item_id: str, parent: ParentRef | None) -> ImportSession:
    """Point an attachment item at its parent asset."""

    item = session.item(item_id)
    if item.mode is not ImportMode.ATTACHMENT:
        raise InvalidParentError(f"Item {item.name} is not an attachment")
    if isinstance(parent, PendingParent):
        if parent.item_id == item_id:
            raise InvalidParentError(f"Item {item.name} cannot be its own parent")
        target = session.find(parent.item_id)
        if target is None:
            raise InvalidParentError(f"Parent item {parent.item_id} is not in this session")
        if target.mode is ImportMode.ATTACHMENT:
            raise InvalidParentError(f"Parent item {target.name} is itself an attachment")
    elif isinstance(parent, ExistingParent) and not parent.asset_id:
        raise InvalidParentError("Parent asset id must not be empty")

    action = item.attachment_action
    if action is AttachmentAction.UPDATE_EXISTING:
        action = AttachmentAction.CREATE
    return session.with_item(
        replace(
            item,
            parent=parent,
            attachment_verdict=NO_ATTACHMENT_DUPLICATE,
            attachment_action=action,
        )
    )


def apply_attachment_edit(
    session: ImportSession,
    item_id: str,
    **changes: str | float | None,
) -> ImportSession:
    """Edit name/value/serial_number/description of an attachment draft."""

    item = session.item(item_id)
    if item.mode is not ImportMode.ATTACHMENT or item.attachment is None:
        raise InvalidAttachmentActionError(f"Item {item.name} is not an attachment")
    allowed = {"name", "value", "serial_number", "description"}
    unknown = set(changes) - allowed
    if unknown:
        raise UnknownFieldError(f"Unknown attachment field(s): {', '.join(sorted(unknown))}")
    cleaned = {key: _blank_to_none(value) for key, value in changes.items()}
    return session.with_item(
        replace(item, attachment=replace(item.attachment, **cleaned))  # pyright: ignore[reportArgumentType]
    )


def apply_attachment_action(
    session: ImportSession,
    item_id: str,
    action: AttachmentAction,
) -> ImportSession:
    item = session.item(item_id)
    if item.mode is not ImportMode.ATTACHMENT:
        raise InvalidAttachmentActionError(f"Item {item.name} is not an attachment")
    if action is AttachmentAction.UPDATE_EXISTING and not item.attachment_verdict.is_match:
        raise InvalidAttachmentActionError(
            f"Item {item.name} has no matching attachment to update"
        )
    return session.with_item(replace(item, attachment_action=action))


def apply_attachment_verdict(
    session: ImportSession,
    item_id: str,
    verdict: AttachmentVerdict,
    *,
    parent: ParentRef | None,
) -> ImportSession:
    """Store the verdict of a check made against ``parent``.

    Late results are dropped when the item vanished, left attachment mode, or
    was moved to another parent while the check ran.
    """

    item = session.find(item_id)
    if item is None or item.mode is not ImportMode.ATTACHMENT:
        return session
    if item.parent != parent:
        log.debug("Dropped attachment verdict for %s: parent changed", item.name)
        return session
    action = item.attachment_action
    if not verdict.is_match and action is AttachmentAction.UPDATE_EXISTING:
        action = AttachmentAction.CREATE
    return session.with_item(replace(item, attachment_verdict=verdict, attachment_action=action))


# --- field edits ------------------------------------------------------------------


def _blank_to_none[T](value: T) -> T | None:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _coerce_field(field_name: str, value: Scalar) -> object:
    value = _blank_to_none(value)
    if value is None:
        return None
    if field_name == "financing_type":
        return FinancingType(str(value).strip().lower())
    if field_name == "purchase_condition":
        return PurchaseCondition(str(value).strip().lower())
    if field_name in _INTEGER_FIELDS:
        return int(value)
    if field_name in _AMOUNT_FIELDS:
        return float(value)
    return str(value).strip() if field_name in {"make", "model"} else value


def _refreshed(session: ImportSession, item: ImportSessionItem) -> ImportSessionItem:
    verdict = _verdict_for(item.candidate, session.registry, session.config, item.verdict)
    updated = replace(item, verdict=verdict)
    if item.mode is ImportMode.ATTACHMENT:
        return updated

    if verdict.status is DuplicateStatus.NONE and (
        item.mode is ImportMode.UPDATE_EXISTING
        or (item.mode is ImportMode.SKIP and item.verdict.is_match)
    ):
        log.info("Item %s no longer matches the registry; importing as new", item.name)
        return replace(updated, mode=ImportMode.NEW, selected=True)
    if verdict.status is DuplicateStatus.EXACT and not verdict.backfillable_fields:
        log.info("Item %s is now an exact duplicate with nothing to backfill", item.name)
        return replace(updated, mode=ImportMode.SKIP, selected=False)
    return updated


def recompute_verdict(session: ImportSession, item_id: str) -> ImportSession:
    """Re-run registry duplicate detection for one item and apply auto-transitions."""

    return session.with_item(_refreshed(session, session.item(item_id)))


def apply_field_edit(
    session: ImportSession,
    item_id: str,
    field_name: str,
    value: Scalar,
) -> ImportSession:
    """Overwrite one candidate field with a caller-provided value."""

    if field_name not in EDITABLE_FIELDS:
        raise UnknownFieldError(f"Field {field_name!r} cannot be edited")
    item = session.item(item_id)
    try:
        coerced = _coerce_field(field_name, value)
    except ValueError as exc:
        raise UnknownFieldError(f"Invalid value for {field_name}: {value!r}") from exc

    sources = dict(item.field_sources)
    sources[field_name] = MANUAL_SOURCE
    updated = replace(
        item,
        candidate=replace(item.candidate, **{field_name: coerced}),  # pyright: ignore[reportArgumentType]
        field_sources=MappingProxyType(sources),
    )
    if field_name in MATCH_FIELDS or field_name in BACKFILL_FIELDS:
        updated = _refreshed(session, updated)
    return session.with_item(updated)


def apply_field_revert(session: ImportSession, item_id: str, field_name: str) -> ImportSession:
    """Restore one field to its extracted value and source."""

    if field_name not in EDITABLE_FIELDS:
        raise UnknownFieldError(f"Field {field_name!r} cannot be reverted")
    item = session.item(item_id)
    original_value = getattr(item.original, field_name)
    seeded = seed_field_sources(item.original, _conflicts_for(session.conflicts, item.index))
    sources = dict(item.field_sources)
    if field_name in seeded:
        sources[field_name] = seeded[field_name]
    else:
        sources.pop(field_name, None)
    updated = replace(
        item,
        candidate=replace(item.candidate, **{field_name: original_value}),  # pyright: ignore[reportArgumentType]
        field_sources=MappingProxyType(sources),
    )
    if field_name in MATCH_FIELDS or field_name in BACKFILL_FIELDS:
        updated = _refreshed(session, updated)
    return session.with_item(updated)


def apply_backfill_toggle(
    session: ImportSession,
    item_id: str,
    field_name: str,
    *,
    will_apply: bool,
) -> ImportSession:
    item = session.item(item_id)
    return session.with_item(
        replace(item, verdict=item.verdict.with_apply(field_name, will_apply=will_apply))
    )


# --- fragment merge ----------------------------------------------------------------


def apply_merge(session: ImportSession, group: FragmentGroup) -> ImportSession:
    """Collapse a fragment group into its primary item.

    Secondary items leave the session; parent references that pointed at them
    are rewritten to the surviving primary, or cleared when the primary is
    itself an attachment.
    """

    primary = session.item_at(group.primary_index)
    if primary is None:
        raise ReconciliationError(
            f"Fragment group for batch index {group.primary_index} no longer applies"
        )
    secondaries = [
        item
        for index in group.duplicate_indices
        if (item := session.item_at(index)) is not None and item.item_id != primary.item_id
    ]

    merged_candidate = merge_fragments(primary.candidate, [item.candidate for item in secondaries])
    merged_original = merge_fragments(primary.original, [item.original for item in secondaries])
    sources = dict(primary.field_sources)
    merged_from = list(primary.merged_from)
    for item in secondaries:
        for name, source in item.field_sources.items():
            sources.setdefault(name, source)
        merged_from.extend((item.item_id, *item.merged_from))

    survivor = replace(
        primary,
        candidate=merged_candidate,
        original=merged_original,
        merged_from=tuple(merged_from),
        field_sources=MappingProxyType(sources),
    )
    verdict = _verdict_for(merged_candidate, session.registry, session.config, primary.verdict)
    if primary.mode is ImportMode.ATTACHMENT:
        survivor = replace(survivor, verdict=verdict)
    else:
        mode = initial_mode(replace(merged_candidate, suggested_type=None), verdict)
        survivor = replace(
            survivor,
            verdict=verdict,
            mode=mode,
            selected=mode is not ImportMode.SKIP,
        )

    removed = {item.item_id for item in secondaries}
    items: list[ImportSessionItem] = []
    for item in session.items:
        if item.item_id in removed:
            continue
        if item.item_id == survivor.item_id:
            item = survivor  # noqa: PLW2901
        if isinstance(item.parent, PendingParent) and item.parent.item_id in removed:
            # an attachment survivor cannot parent the secondaries' children
            keeps_children = (
                item.item_id != survivor.item_id and survivor.mode is not ImportMode.ATTACHMENT
            )
            new_parent = PendingParent(survivor.item_id) if keeps_children else None
            if new_parent is None and item.item_id != survivor.item_id:
                log.info("Cleared parent of %s: merged parent is an attachment", item.name)
            item = replace(item, parent=new_parent)  # noqa: PLW2901
        items.append(item)

    remaining_groups = tuple(
        other for other in session.fragment_groups if other.primary_index != group.primary_index
    )
    log.info(
        "Merged %s fragment(s) into %s (%s)",
        len(secondaries),
        survivor.name,
        group.reason,
    )
    return replace(session, items=tuple(items), fragment_groups=remaining_groups)


def apply_dismiss_fragment_group(session: ImportSession, group: FragmentGroup) -> ImportSession:
    """Forget a fragment group without merging it."""

    remaining = tuple(
        other for other in session.fragment_groups if other.primary_index != group.primary_index
    )
    return replace(session, fragment_groups=remaining)
