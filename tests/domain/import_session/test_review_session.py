from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest

from fleetrecon.adapters.memory import InMemoryRecordStore
from fleetrecon.config import ReconciliationConfig
from fleetrecon.domain.import_session import (
    TITLE_SUCCESS,
    ExistingParent,
    InvalidAttachmentActionError,
    ReviewSession,
)
from fleetrecon.domain.model import AttachmentAction, DuplicateStatus, ImportMode, SuggestedType
from fleetrecon.domain.reconciliation import NO_ATTACHMENT_DUPLICATE
from tests.helpers.records import (
    make_attachment_record,
    make_batch,
    make_candidate,
    make_registry_record,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from fleetrecon.domain.model import AttachmentRecord, CandidateRecord, ExtractionBatch


class HookedRecordStore(InMemoryRecordStore):
    """Runs a callback while an attachment lookup is in flight."""

    on_list_attachments: Callable[[], None] | None = None

    async def list_attachments(self, parent_id: str) -> list[AttachmentRecord]:
        if self.on_list_attachments is not None:
            self.on_list_attachments()
        return await super().list_attachments(parent_id)


def _bucket(parent_index: int | None = None) -> CandidateRecord:
    return make_candidate(
        "Bobcat",
        "Grapple Bucket",
        suggested_type=SuggestedType.ATTACHMENT,
        suggested_parent_index=parent_index,
    )


def _store() -> HookedRecordStore:
    return HookedRecordStore(
        assets=[make_registry_record("asset-1", serial_vin="S1")],
        attachments=[make_attachment_record("Bobcat Grapple Bucket 72in")],
    )


def _open(
    store: InMemoryRecordStore,
    batch: ExtractionBatch,
    config: ReconciliationConfig | None = None,
) -> ReviewSession:
    return asyncio.run(ReviewSession.open(store, batch, config=config))


def test_open_reconciles_against_the_store_registry() -> None:
    review = _open(_store(), make_batch(make_candidate(serial_vin="s1", sales_tax=3000)))

    (item,) = review.items
    assert item.verdict.status is DuplicateStatus.EXACT
    assert item.verdict.matched_record_id == "asset-1"
    assert item.mode is ImportMode.UPDATE_EXISTING


def test_actions_replace_the_state_snapshot() -> None:
    review = _open(_store(), make_batch(make_candidate("Kubota", "SVL75")))
    before = review.state
    item_id = review.items[0].item_id

    review.toggle_select(item_id)

    assert before.items[0].selected
    assert not review.item(item_id).selected
    review.toggle_select(item_id)
    assert review.item(item_id).selected


def test_toggle_backfill_flips_and_ignores_unknown_fields() -> None:
    review = _open(_store(), make_batch(make_candidate(serial_vin="S1", sales_tax=3000)))
    item_id = review.items[0].item_id

    review.toggle_backfill(item_id, "sales_tax")
    review.toggle_backfill(item_id, "buyout_amount")

    (diff,) = review.item(item_id).verdict.backfillable_fields
    assert not diff.will_apply


def test_merge_all_fragment_groups() -> None:
    batch = make_batch(
        make_candidate(purchase_price=45000),
        make_candidate(monthly_payment=900),
        make_candidate("Kubota", "SVL75", financed_amount=50000),
        make_candidate("Kubota", "SVL75", purchase_price=61000),
    )
    review = _open(_store(), batch)
    assert len(review.fragment_groups) == 2

    merged = review.merge_all_fragment_groups()

    assert merged == 2
    assert len(review.items) == 2
    assert review.fragment_groups == ()


def test_dismiss_fragment_group_keeps_items() -> None:
    batch = make_batch(make_candidate(purchase_price=45000), make_candidate(monthly_payment=900))
    review = _open(_store(), batch)

    review.dismiss_fragment_group(review.fragment_groups[0])

    assert len(review.items) == 2
    assert review.fragment_groups == ()


def test_refresh_attachment_duplicate_against_existing_parent() -> None:
    review = _open(_store(), make_batch(_bucket()))
    item_id = review.items[0].item_id
    review.set_parent_asset(item_id, "asset-1")

    verdict = asyncio.run(review.refresh_attachment_duplicate(item_id))

    assert verdict is not None
    assert verdict.matched_attachment_id == "att-1"
    assert review.item(item_id).attachment_verdict == verdict


def test_refresh_uses_registry_id_of_update_existing_parent() -> None:
    batch = make_batch(make_candidate(serial_vin="S1", sales_tax=3000), _bucket(0))
    review = _open(_store(), batch)

    verdict = asyncio.run(review.refresh_attachment_duplicate(review.items[1].item_id))

    assert verdict is not None
    assert verdict.is_match


def test_refresh_skips_parents_that_are_not_in_the_registry() -> None:
    store = _store()
    calls: list[str] = []
    store.on_list_attachments = lambda: calls.append("list")
    review = _open(store, make_batch(make_candidate("Kubota", "SVL75"), _bucket(0)))

    verdict = asyncio.run(review.refresh_attachment_duplicate(review.items[1].item_id))

    assert verdict is None
    assert calls == []


def test_late_refresh_result_is_dropped_when_item_left_attachment_mode() -> None:
    store = _store()
    review = _open(store, make_batch(_bucket()))
    item_id = review.items[0].item_id
    review.set_parent_asset(item_id, "asset-1")
    store.on_list_attachments = lambda: review.set_mode(item_id, ImportMode.NEW)

    asyncio.run(review.refresh_attachment_duplicate(item_id))

    item = review.item(item_id)
    assert item.mode is ImportMode.NEW
    assert item.attachment_verdict is NO_ATTACHMENT_DUPLICATE


def test_refresh_uses_registry_id_of_skipped_parent() -> None:
    review = _open(_store(), make_batch(make_candidate(serial_vin="S1"), _bucket(0)))
    assert review.items[0].mode is ImportMode.SKIP

    verdict = asyncio.run(review.refresh_attachment_duplicate(review.items[1].item_id))

    assert verdict is not None
    assert verdict.matched_attachment_id == "att-1"


def test_late_refresh_result_is_dropped_when_parent_changed() -> None:
    store = _store()
    review = _open(store, make_batch(_bucket()))
    item_id = review.items[0].item_id
    review.set_parent_asset(item_id, "asset-1")
    store.on_list_attachments = lambda: review.set_parent_asset(item_id, "asset-2")

    asyncio.run(review.refresh_attachment_duplicate(item_id))

    item = review.item(item_id)
    assert item.parent == ExistingParent("asset-2")
    assert item.attachment_verdict is NO_ATTACHMENT_DUPLICATE
    with pytest.raises(InvalidAttachmentActionError):
        review.set_attachment_action(item_id, AttachmentAction.UPDATE_EXISTING)


def test_unresolved_items_follow_parent_assignment() -> None:
    batch = make_batch(make_candidate("Kubota", "SVL75"), _bucket())
    review = _open(_store(), batch)
    loader_id, bucket_id = (item.item_id for item in review.items)

    assert [item.item_id for item in review.unresolved_items()] == [bucket_id]
    review.set_parent_item(bucket_id, loader_id)
    assert review.unresolved_items() == ()


def test_commit_uses_configured_document_switch() -> None:
    store = _store()
    candidate = make_candidate("Kubota", "SVL75", files=["invoice.pdf"])
    review = _open(
        store,
        make_batch(candidate),
        config=ReconciliationConfig(attach_documents=False),
    )

    result = asyncio.run(review.commit())

    assert result.title == TITLE_SUCCESS
    assert result.created == 1
    assert store.documents == []

    second = _open(store, make_batch(candidate))
    asyncio.run(second.commit())
    assert [document.file_name for document in store.documents] == ["invoice.pdf"]
