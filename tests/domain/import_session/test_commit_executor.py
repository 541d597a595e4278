from __future__ import annotations

import asyncio
from datetime import date

import pytest

from fleetrecon.domain.import_session import (
    TITLE_FAILED,
    TITLE_PARTIAL,
    TITLE_SUCCESS,
    CommitBlockedError,
    CommitExecutor,
    CommitResult,
    ExistingParent,
    ImportSession,
    OutcomeKind,
    apply_attachment_action,
    apply_attachment_verdict,
    apply_backfill_toggle,
    apply_parent,
    apply_select_all,
    apply_selection,
    build_asset_payload,
    start_session,
)
from fleetrecon.domain.model import (
    AttachmentAction,
    CandidateRecord,
    DocumentRecord,
    DuplicateStatus,
    FinancingType,
    ImportMode,
    SuggestedType,
)
from fleetrecon.domain.reconciliation import AttachmentVerdict
from tests.helpers.records import (
    FailingRecordStore,
    make_attachment_record,
    make_batch,
    make_candidate,
    make_registry_record,
)


def _store(**kwargs: object) -> FailingRecordStore:
    return FailingRecordStore(
        assets=[make_registry_record("asset-1", serial_vin="S1")],
        **kwargs,  # pyright: ignore[reportArgumentType]
    )


def _session(store: FailingRecordStore, *candidates: CandidateRecord) -> ImportSession:
    return start_session(make_batch(*candidates), list(store.assets.values()))


def _execute(
    store: FailingRecordStore,
    session: ImportSession,
    *,
    attach_documents: bool = True,
) -> CommitResult:
    executor = CommitExecutor(store, attach_documents=attach_documents)
    return asyncio.run(executor.execute(session))


def _bucket(parent_index: int | None = None) -> CandidateRecord:
    return make_candidate(
        "Bobcat",
        "Grapple Bucket",
        purchase_price=3500,
        suggested_type=SuggestedType.ATTACHMENT,
        suggested_parent_index=parent_index,
    )


# --- validation ------------------------------------------------------------------


def test_commit_without_selection_is_blocked_before_store_calls() -> None:
    store = _store()
    session = apply_select_all(_session(store, make_candidate("Kubota", "SVL75")), selected=False)

    with pytest.raises(CommitBlockedError, match="No items selected"):
        _execute(store, session)

    assert store.calls == []


def test_commit_with_parentless_attachment_is_blocked() -> None:
    store = _store()
    session = _session(store, make_candidate("Kubota", "SVL75"), _bucket())

    with pytest.raises(CommitBlockedError) as excinfo:
        _execute(store, session)

    assert excinfo.value.item_names == ("Bobcat Grapple Bucket",)
    assert store.calls == []


def test_commit_with_unwritten_pending_parent_is_blocked() -> None:
    store = _store()
    session = _session(store, make_candidate("Kubota", "SVL75"), _bucket(0))
    session = apply_selection(session, session.items[0].item_id, selected=False)

    with pytest.raises(CommitBlockedError, match="without a parent asset") as excinfo:
        _execute(store, session)

    assert excinfo.value.item_names == ("Bobcat Grapple Bucket",)
    assert store.calls == []


# --- asset pass --------------------------------------------------------------------


def test_failed_create_and_successful_update_report_partial_import() -> None:
    store = _store(fail_create_for={"Kubota SVL75"})
    session = _session(
        store,
        make_candidate("Kubota", "SVL75"),
        make_candidate(serial_vin="S1", sales_tax=3000),
    )
    assert [item.mode for item in session.items] == [ImportMode.NEW, ImportMode.UPDATE_EXISTING]

    result = _execute(store, session)

    assert result.title == TITLE_PARTIAL
    assert result.succeeded == 1
    assert len(result.failures) == 1
    assert result.failures[0].name == "Kubota SVL75"
    assert "create failed" in result.failures[0].error
    assert result.updated == 1
    assert store.assets["asset-1"].sales_tax == 3000
    assert result.description == "1 item(s) imported, failed: Kubota SVL75"


def test_every_item_failing_reports_import_failed() -> None:
    store = _store(fail_create_for={"Kubota SVL75"})
    session = _session(store, make_candidate("Kubota", "SVL75"))

    result = _execute(store, session)

    assert result.title == TITLE_FAILED
    assert result.succeeded == 0
    assert result.description.startswith("Nothing was imported")


def test_update_only_writes_applied_backfill_fields() -> None:
    store = _store()
    session = _session(store, make_candidate(serial_vin="S1", sales_tax=3000, freight_setup=500))
    item_id = session.items[0].item_id
    session = apply_backfill_toggle(session, item_id, "sales_tax", will_apply=False)

    result = _execute(store, session)

    asset = store.assets["asset-1"]
    assert asset.sales_tax is None
    assert asset.freight_setup == 500
    assert result.outcomes[0].kind is OutcomeKind.UPDATED
    assert result.outcomes[0].detail == "freight_setup"


def test_update_with_nothing_applied_is_a_soft_skip_that_still_maps_the_asset() -> None:
    store = _store()
    session = _session(store, make_candidate(serial_vin="S1", sales_tax=3000), _bucket(0))
    loader_id = session.items[0].item_id
    session = apply_backfill_toggle(session, loader_id, "sales_tax", will_apply=False)

    result = _execute(store, session)

    assert "update_asset" not in store.calls
    assert result.title == TITLE_SUCCESS
    assert result.skipped == 1
    assert result.asset_ids[loader_id] == "asset-1"
    (attachment,) = store.attachments.values()
    assert attachment.equipment_id == "asset-1"


def test_new_asset_and_pending_attachment_are_written_in_order() -> None:
    store = _store()
    session = _session(store, make_candidate("Kubota", "SVL75", year=2022), _bucket(0))
    loader_id = session.items[0].item_id

    result = _execute(store, session)

    assert result.title == TITLE_SUCCESS
    assert [outcome.kind for outcome in result.outcomes] == [
        OutcomeKind.CREATED,
        OutcomeKind.ATTACHED,
    ]
    new_id = result.asset_ids[loader_id]
    (attachment,) = store.attachments.values()
    assert attachment.equipment_id == new_id
    assert attachment.value == 3500
    assert store.calls.index("create_asset") < store.calls.index("create_attachment")


def test_attachment_of_failed_parent_fails_without_store_write() -> None:
    store = _store(fail_create_for={"Kubota SVL75"})
    session = _session(store, make_candidate("Kubota", "SVL75"), _bucket(0))

    result = _execute(store, session)

    assert result.title == TITLE_FAILED
    assert [failure.name for failure in result.failures] == [
        "Kubota SVL75",
        "Bobcat Grapple Bucket",
    ]
    assert "create_attachment" not in store.calls


# --- attachment pass ---------------------------------------------------------------


def _attached_to_existing(store: FailingRecordStore) -> ImportSession:
    session = _session(store, _bucket())
    return apply_parent(session, session.items[0].item_id, ExistingParent("asset-1"))


def test_create_rechecks_for_duplicates_on_the_parent() -> None:
    store = _store(attachments=[make_attachment_record("Bobcat Grapple Bucket 72in")])
    session = _attached_to_existing(store)

    result = _execute(store, session)

    (outcome,) = result.outcomes
    assert outcome.kind is OutcomeKind.SKIPPED
    assert outcome.record_id == "att-1"
    assert "create_attachment" not in store.calls
    assert result.title == TITLE_SUCCESS


def test_import_anyway_skips_the_duplicate_check() -> None:
    store = _store(attachments=[make_attachment_record("Bobcat Grapple Bucket 72in")])
    session = _attached_to_existing(store)
    session = apply_attachment_action(
        session, session.items[0].item_id, AttachmentAction.IMPORT_ANYWAY
    )

    result = _execute(store, session)

    assert result.attached == 1
    assert "list_attachments" not in store.calls
    assert len(store.attachments) == 2


def test_update_existing_attachment_overwrites_the_match() -> None:
    store = _store(attachments=[make_attachment_record("Bobcat Grapple Bucket 72in")])
    session = _attached_to_existing(store)
    item_id = session.items[0].item_id
    verdict = AttachmentVerdict(
        status=DuplicateStatus.EXACT,
        matched_attachment_id="att-1",
        matched_name="Bobcat Grapple Bucket 72in",
    )
    session = apply_attachment_verdict(
        session, item_id, verdict, parent=ExistingParent("asset-1")
    )
    session = apply_attachment_action(session, item_id, AttachmentAction.UPDATE_EXISTING)

    result = _execute(store, session)

    assert result.outcomes[0].kind is OutcomeKind.ATTACHMENT_UPDATED
    updated = store.attachments["att-1"]
    assert updated.name == "Bobcat Grapple Bucket"
    assert updated.value == 3500
    assert len(store.attachments) == 1


def test_skip_action_is_a_soft_skip() -> None:
    store = _store()
    session = _attached_to_existing(store)
    session = apply_attachment_action(session, session.items[0].item_id, AttachmentAction.SKIP)

    result = _execute(store, session)

    assert result.title == TITLE_SUCCESS
    assert result.skipped == 1
    assert store.attachments == {}


def test_attachment_write_failure_is_recorded() -> None:
    store = _store(fail_attachment_for={"Bobcat Grapple Bucket"})
    session = _attached_to_existing(store)

    result = _execute(store, session)

    assert result.title == TITLE_FAILED
    assert result.failures[0].name == "Bobcat Grapple Bucket"


# --- document pass -----------------------------------------------------------------


def test_documents_are_uploaded_once_per_owner_and_file() -> None:
    store = _store(documents=[DocumentRecord(owner_id="asset-1", file_name="invoice.pdf")])
    session = _session(
        store,
        make_candidate(serial_vin="S1", sales_tax=3000, files=["invoice.pdf", "agreement.pdf"]),
        make_candidate(serial_vin="s-1", monthly_payment=900, files=["agreement.pdf", "photo.jpg"]),
    )

    result = _execute(store, session)

    assert result.documents_uploaded == 2
    assert result.documents_skipped == 2
    names = [document.file_name for document in store.documents]
    assert sorted(names) == ["agreement.pdf", "invoice.pdf", "photo.jpg"]


def test_documents_of_attachments_go_to_the_parent() -> None:
    store = _store()
    bucket = make_candidate(
        "Bobcat",
        "Grapple Bucket",
        suggested_type=SuggestedType.ATTACHMENT,
        files=["bucket-invoice.pdf"],
    )
    session = _session(store, bucket)
    session = apply_parent(session, session.items[0].item_id, ExistingParent("asset-1"))

    result = _execute(store, session)

    assert result.documents_uploaded == 1
    assert store.documents == [DocumentRecord(owner_id="asset-1", file_name="bucket-invoice.pdf")]


def test_documents_can_be_disabled() -> None:
    store = _store()
    session = _session(store, make_candidate("Kubota", "SVL75", files=["invoice.pdf"]))

    result = _execute(store, session, attach_documents=False)

    assert result.created == 1
    assert "upload_document" not in store.calls
    assert store.documents == []


# --- payload defaults --------------------------------------------------------------


def test_asset_payload_defaults_missing_values() -> None:
    store = _store()
    session = _session(store, make_candidate("Kubota", "SVL75", purchase_price=61000))

    payload = build_asset_payload(session.items[0], today=date(2024, 6, 1))

    assert payload.name == "Kubota SVL75"
    assert payload.year == 2024
    assert payload.purchase_date == "2024-06-01"
    assert payload.replacement_cost_new == 61000
    assert payload.financing_type is FinancingType.OWNED
    assert payload.sales_tax == 0.0


def test_asset_payload_year_falls_back_to_purchase_date() -> None:
    store = _store()
    session = _session(store, make_candidate("Kubota", "SVL75", purchase_date="2021-03-04"))

    payload = build_asset_payload(session.items[0], today=date(2024, 6, 1))

    assert payload.year == 2021
    assert payload.purchase_date == "2021-03-04"
