from __future__ import annotations

from pathlib import Path

import pytest

from fleetrecon.adapters.extraction import BatchPayloadError
from fleetrecon.config import ReconciliationConfig
from fleetrecon.domain.import_session import (
    CommitResult,
    ImportSession,
    ItemOutcome,
    OutcomeKind,
    start_session,
)
from fleetrecon.domain.model import SuggestedType
from fleetrecon.ui import cli as cli_module
from tests.helpers.records import make_batch, make_candidate, make_registry_record


class FakeReview:
    def __init__(self, state: ImportSession) -> None:
        self.state = state


def _session() -> ImportSession:
    return start_session(
        make_batch(
            make_candidate(serial_vin="S1", sales_tax=3000),
            make_candidate("Big Tex", "14GN", suggested_category="Trailer"),
            make_candidate("Bobcat", "Pallet Forks", suggested_type=SuggestedType.ATTACHMENT),
        ),
        [make_registry_record("asset-1", serial_vin="S1")],
    )


def test_review_prints_the_plan(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    captured: dict[str, object] = {}

    def fake_review(batch_path: Path, **kwargs: object) -> FakeReview:
        captured["batch_path"] = batch_path
        captured.update(kwargs)
        return FakeReview(_session())

    monkeypatch.setattr(cli_module, "review_extraction_batch", fake_review)

    cli_module.main(["review", "batch.json"])

    assert captured["batch_path"] == Path("batch.json")
    assert captured["merge_fragments"] is False
    assert captured["database_uri"] is None
    assert isinstance(captured["config"], ReconciliationConfig)
    out = capsys.readouterr().out
    assert "-> update_existing" in out
    assert "exact duplicate of Bobcat S650 [serial]" in out
    assert "backfill Sales Tax: None -> 3000" in out
    assert "[x] #2 Big Tex 14GN (Trailer) -> new" in out
    assert "attachment of unresolved" in out
    assert "unresolved: Bobcat Pallet Forks" in out


def test_import_passes_flags(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_import(batch_path: Path, **kwargs: object) -> CommitResult:
        captured.update(kwargs)
        return CommitResult()

    monkeypatch.setattr(cli_module, "import_extraction_batch", fake_import)

    cli_module.main(
        [
            "import",
            "batch.json",
            "--merge-fragments",
            "--no-documents",
            "--database-uri",
            "sqlite+pysqlite:///:memory:",
        ]
    )

    assert captured["merge_fragments"] is True
    assert captured["attach_documents"] is False
    assert captured["database_uri"] == "sqlite+pysqlite:///:memory:"


def test_import_exits_with_1_when_nothing_succeeded(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    def fake_import(*_: object, **__: object) -> CommitResult:
        result = CommitResult()
        result.record(
            ItemOutcome(
                item_id="item-1",
                name="Kubota SVL75",
                kind=OutcomeKind.FAILED,
                detail="store offline",
            )
        )
        return result

    monkeypatch.setattr(cli_module, "import_extraction_batch", fake_import)

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["import", "batch.json"])

    assert excinfo.value.code == 1
    out = capsys.readouterr().out
    assert "Import Failed" in out
    assert "failed: Kubota SVL75: store offline" in out


def test_invalid_batch_exits_with_2(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_review(*_: object, **__: object) -> FakeReview:
        raise BatchPayloadError("Invalid extraction batch")

    monkeypatch.setattr(cli_module, "review_extraction_batch", fake_review)

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["review", "batch.json"])

    assert excinfo.value.code == 2


def test_invalid_configuration_exits_with_2(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FLEETRECON_PRICE_TOLERANCE", "lots")

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["review", "batch.json"])

    assert excinfo.value.code == 2


def test_missing_command_exits_with_2() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main([])

    assert excinfo.value.code == 2
