"""Write a reviewed import session to the record store.

The executor runs three passes strictly one after another:

1. assets: create ``new`` items, backfill ``update_existing`` items
2. attachments: write attachment items against their resolved parent
3. documents: upload each item's source files to the asset that owns them

A store failure is recorded against the item it happened on and the pass moves
on to the next item.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum
from typing import TYPE_CHECKING

from fleetrecon.domain.model import (
    AssetChanges,
    AttachmentAction,
    AttachmentPayload,
    FinancingType,
    ImportMode,
    NewAssetPayload,
    PurchaseCondition,
)
from fleetrecon.domain.reconciliation import find_attachment_duplicate, parse_date

from .errors import CommitBlockedError
from .items import ExistingParent, PendingParent

if TYPE_CHECKING:
    from fleetrecon.domain.model import CandidateRecord, Scalar
    from fleetrecon.domain.ports import RecordStore

    from .items import ImportSessionItem
    from .state import ImportSession

log = logging.getLogger(__name__)

TITLE_SUCCESS = "Import Successful"
TITLE_PARTIAL = "Partial Import"
TITLE_FAILED = "Import Failed"


class OutcomeKind(StrEnum):
    CREATED = "created"
    UPDATED = "updated"
    ATTACHED = "attached"
    ATTACHMENT_UPDATED = "attachment_updated"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True, slots=True, kw_only=True)
class ItemOutcome:
    item_id: str
    name: str
    kind: OutcomeKind
    record_id: str | None = None
    detail: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class CommitFailure:
    name: str
    error: str


@dataclass(slots=True, kw_only=True)
class CommitResult:
    """Per-item outcomes and counters of one commit run."""

    outcomes: list[ItemOutcome] = field(default_factory=list[ItemOutcome])
    failures: list[CommitFailure] = field(default_factory=list[CommitFailure])
    asset_ids: dict[str, str] = field(default_factory=dict[str, str])
    documents_uploaded: int = 0
    documents_skipped: int = 0

    def _count(self, *kinds: OutcomeKind) -> int:
        return sum(1 for outcome in self.outcomes if outcome.kind in kinds)

    @property
    def created(self) -> int:
        return self._count(OutcomeKind.CREATED)

    @property
    def updated(self) -> int:
        return self._count(OutcomeKind.UPDATED)

    @property
    def attached(self) -> int:
        return self._count(OutcomeKind.ATTACHED, OutcomeKind.ATTACHMENT_UPDATED)

    @property
    def skipped(self) -> int:
        return self._count(OutcomeKind.SKIPPED)

    @property
    def succeeded(self) -> int:
        return len(self.outcomes) - self._count(OutcomeKind.FAILED)

    @property
    def title(self) -> str:
        if not self.failures:
            return TITLE_SUCCESS
        if self.succeeded:
            return TITLE_PARTIAL
        return TITLE_FAILED

    @property
    def description(self) -> str:
        if not self.failures:
            parts = [f"{self.created} created", f"{self.updated} updated"]
            if self.attached:
                parts.append(f"{self.attached} attachment(s)")
            if self.skipped:
                parts.append(f"{self.skipped} skipped")
            if self.documents_uploaded:
                parts.append(f"{self.documents_uploaded} document(s) uploaded")
            return ", ".join(parts)
        names = ", ".join(dict.fromkeys(failure.name for failure in self.failures))
        if self.succeeded:
            return f"{self.succeeded} item(s) imported, failed: {names}"
        return f"Nothing was imported, failed: {names}"

    def record(self, outcome: ItemOutcome) -> None:
        self.outcomes.append(outcome)
        if outcome.kind is OutcomeKind.FAILED:
            self.failures.append(CommitFailure(name=outcome.name, error=outcome.detail or ""))


def validate_for_commit(session: ImportSession) -> None:
    """Raise ``CommitBlockedError`` when the session cannot be committed as is."""

    if not session.selected_items:
        raise CommitBlockedError("No items selected for import")
    unresolved = session.unresolved_items
    if unresolved:
        names = [item.name for item in unresolved]
        raise CommitBlockedError(
            f"Attachment(s) without a parent asset: {', '.join(names)}",
            item_names=names,
        )


def _amount(value: float | None) -> float:
    return value or 0.0


def _default_year(candidate: CandidateRecord, today: date) -> int:
    if candidate.year:
        return candidate.year
    purchased = parse_date(candidate.purchase_date)
    return purchased.year if purchased is not None else today.year


def build_asset_payload(
    item: ImportSessionItem,
    *,
    today: date | None = None,
) -> NewAssetPayload:
    """Full create payload for a ``new`` item, with every gap defaulted."""

    today = today or date.today()
    candidate = item.candidate
    price = _amount(candidate.purchase_price)
    return NewAssetPayload(
        name=candidate.display_name,
        make=candidate.make,
        model=candidate.model,
        year=_default_year(candidate, today),
        category=item.category,
        purchase_date=candidate.purchase_date or today.isoformat(),
        serial_vin=candidate.serial_vin or None,
        purchase_price=price,
        sales_tax=_amount(candidate.sales_tax),
        freight_setup=_amount(candidate.freight_setup),
        replacement_cost_new=price,
        financing_type=candidate.financing_type or FinancingType.OWNED,
        deposit_amount=_amount(candidate.deposit_amount),
        financed_amount=_amount(candidate.financed_amount),
        monthly_payment=_amount(candidate.monthly_payment),
        term_months=candidate.term_months or 0,
        buyout_amount=_amount(candidate.buyout_amount),
        purchase_condition=candidate.purchase_condition or PurchaseCondition.NEW,
        notes=candidate.notes,
    )


def build_asset_changes(item: ImportSessionItem) -> AssetChanges:
    return AssetChanges(
        values={diff.field: diff.candidate_value for diff in item.verdict.applied_fields}
    )


def build_attachment_payload(item: ImportSessionItem) -> AttachmentPayload:
    draft = item.attachment
    candidate = item.candidate
    if draft is None:
        return AttachmentPayload(
            name=candidate.display_name,
            value=_amount(candidate.purchase_price),
            serial_number=candidate.serial_vin,
            description=candidate.notes,
        )
    return AttachmentPayload(
        name=draft.name or candidate.display_name,
        value=_amount(draft.value),
        serial_number=draft.serial_number,
        description=draft.description,
    )


def _attachment_changes(payload: AttachmentPayload) -> dict[str, Scalar]:
    changes: dict[str, Scalar] = {"name": payload.name, "value": payload.value}
    if payload.serial_number:
        changes["serial_number"] = payload.serial_number
    if payload.description:
        changes["description"] = payload.description
    return changes


class CommitExecutor:
    """Runs the asset, attachment and document passes for one session."""

    def __init__(self, store: RecordStore, *, attach_documents: bool = True) -> None:
        self.store = store
        self.attach_documents = attach_documents

    async def execute(self, session: ImportSession) -> CommitResult:
        validate_for_commit(session)
        result = CommitResult()
        selected = session.selected_items
        log.info("Committing %s selected item(s)", len(selected))

        for item in selected:
            if item.mode in (ImportMode.NEW, ImportMode.UPDATE_EXISTING):
                await self._write_asset(item, result)

        for item in selected:
            if item.mode is ImportMode.ATTACHMENT:
                await self._write_attachment(session, item, result)

        if self.attach_documents:
            await self._upload_documents(session, selected, result)

        log.info(
            "%s: created=%s, updated=%s, attached=%s, skipped=%s, documents=%s, failures=%s",
            result.title,
            result.created,
            result.updated,
            result.attached,
            result.skipped,
            result.documents_uploaded,
            len(result.failures),
        )
        return result

    # --- asset pass ------------------------------------------------------------

    async def _write_asset(self, item: ImportSessionItem, result: CommitResult) -> None:
        try:
            if item.mode is ImportMode.UPDATE_EXISTING:
                await self._update_asset(item, result)
            else:
                asset_id = await self.store.create_asset(build_asset_payload(item))
                result.asset_ids[item.item_id] = asset_id
                result.record(
                    ItemOutcome(
                        item_id=item.item_id,
                        name=item.name,
                        kind=OutcomeKind.CREATED,
                        record_id=asset_id,
                    )
                )
        except Exception as exc:
            log.exception("Failed to write asset %s", item.name)
            result.record(_failure(item, exc))

    async def _update_asset(self, item: ImportSessionItem, result: CommitResult) -> None:
        asset_id = item.verdict.matched_record_id
        if asset_id is None:
            raise CommitBlockedError(f"Item {item.name} has no matched asset to update")
        result.asset_ids[item.item_id] = asset_id
        changes = build_asset_changes(item)
        if not changes:
            result.record(
                ItemOutcome(
                    item_id=item.item_id,
                    name=item.name,
                    kind=OutcomeKind.SKIPPED,
                    record_id=asset_id,
                    detail="no fields selected for update",
                )
            )
            return
        await self.store.update_asset(asset_id, changes)
        result.record(
            ItemOutcome(
                item_id=item.item_id,
                name=item.name,
                kind=OutcomeKind.UPDATED,
                record_id=asset_id,
                detail=", ".join(changes.values),
            )
        )

    # --- attachment pass -------------------------------------------------------

    async def _write_attachment(
        self,
        session: ImportSession,
        item: ImportSessionItem,
        result: CommitResult,
    ) -> None:
        parent_id = resolve_parent_id(session, item, result.asset_ids)
        if parent_id is None:
            result.record(
                _failure(item, CommitBlockedError("parent asset could not be resolved"))
            )
            return

        action = item.attachment_action
        if action is AttachmentAction.SKIP:
            result.record(_skipped(item, parent_id, "skipped by reviewer"))
            return

        payload = build_attachment_payload(item)
        try:
            matched_id = item.attachment_verdict.matched_attachment_id
            if action is AttachmentAction.UPDATE_EXISTING and matched_id is not None:
                await self.store.update_attachment(matched_id, _attachment_changes(payload))
                result.record(
                    ItemOutcome(
                        item_id=item.item_id,
                        name=item.name,
                        kind=OutcomeKind.ATTACHMENT_UPDATED,
                        record_id=matched_id,
                    )
                )
                return
            if action is not AttachmentAction.IMPORT_ANYWAY:
                existing = await self.store.list_attachments(parent_id)
                duplicate = find_attachment_duplicate(item.attachment, item.candidate, existing)
                if duplicate is not None:
                    log.info(
                        "Skipping attachment %s: %s already exists on %s",
                        item.name,
                        duplicate.name,
                        parent_id,
                    )
                    result.record(
                        _skipped(item, duplicate.id, f"already attached as {duplicate.name}")
                    )
                    return
            attachment_id = await self.store.create_attachment(parent_id, payload)
            result.record(
                ItemOutcome(
                    item_id=item.item_id,
                    name=item.name,
                    kind=OutcomeKind.ATTACHED,
                    record_id=attachment_id,
                )
            )
        except Exception as exc:
            log.exception("Failed to write attachment %s", item.name)
            result.record(_failure(item, exc))

    # --- document pass ---------------------------------------------------------

    async def _upload_documents(
        self,
        session: ImportSession,
        items: tuple[ImportSessionItem, ...],
        result: CommitResult,
    ) -> None:
        existing: dict[str, set[str]] = {}
        uploaded: set[tuple[str, str]] = set()
        for item in items:
            if not item.candidate.source_files:
                continue
            if item.mode is ImportMode.ATTACHMENT:
                owner_id = resolve_parent_id(session, item, result.asset_ids)
            else:
                owner_id = result.asset_ids.get(item.item_id)
            if owner_id is None:
                continue

            try:
                if owner_id not in existing:
                    documents = await self.store.list_documents(owner_id)
                    existing[owner_id] = {document.file_name for document in documents}
            except Exception as exc:
                log.exception("Failed to list documents of %s", owner_id)
                result.failures.append(CommitFailure(name=item.name, error=str(exc)))
                continue

            for source in item.candidate.source_files:
                key = (owner_id, source.file_name)
                if source.file_name in existing[owner_id] or key in uploaded:
                    result.documents_skipped += 1
                    continue
                try:
                    await self.store.upload_document(owner_id, source)
                except Exception as exc:
                    log.exception("Failed to upload %s for %s", source.file_name, item.name)
                    result.failures.append(
                        CommitFailure(name=f"{item.name} ({source.file_name})", error=str(exc))
                    )
                    continue
                uploaded.add(key)
                result.documents_uploaded += 1


def resolve_parent_id(
    session: ImportSession,
    item: ImportSessionItem,
    asset_ids: dict[str, str],
) -> str | None:
    """Registry id of an attachment's parent, once the asset pass has run."""

    match item.parent:
        case ExistingParent(asset_id=asset_id):
            return asset_id
        case PendingParent(item_id=parent_item_id):
            if parent_item_id in asset_ids:
                return asset_ids[parent_item_id]
            return session.matched_parent_id(parent_item_id)
        case _:
            return None


def _failure(item: ImportSessionItem, exc: Exception) -> ItemOutcome:
    return ItemOutcome(
        item_id=item.item_id,
        name=item.name,
        kind=OutcomeKind.FAILED,
        detail=str(exc),
    )


def _skipped(item: ImportSessionItem, record_id: str | None, detail: str) -> ItemOutcome:
    return ItemOutcome(
        item_id=item.item_id,
        name=item.name,
        kind=OutcomeKind.SKIPPED,
        record_id=record_id,
        detail=detail,
    )
