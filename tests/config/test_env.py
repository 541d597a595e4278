from __future__ import annotations

import logging
from pathlib import Path

import pytest

from fleetrecon.config import (
    ConfigurationError,
    ReconciliationConfig,
    env_bool,
    env_float,
    env_int,
    get_database_config,
    get_reconciliation_config,
    get_storage_config,
    resolve_log_level,
)


def test_numeric_loaders(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FLOAT_VAR", " 0.25 ")
    monkeypatch.setenv("INT_VAR", "45")
    monkeypatch.delenv("UNSET_VAR", raising=False)

    assert env_float("FLOAT_VAR", 0.1) == 0.25
    assert env_int("INT_VAR", 30) == 45
    assert env_int("UNSET_VAR", 30) == 30


@pytest.mark.parametrize("raw", ["abc", "-1"])
def test_numeric_loaders_reject_bad_values(monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
    monkeypatch.setenv("INT_VAR", raw)

    with pytest.raises(ConfigurationError, match="INT_VAR"):
        env_int("INT_VAR", 30)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("1", True), ("Yes", True), ("off", False), ("false", False)],
)
def test_env_bool(monkeypatch: pytest.MonkeyPatch, raw: str, *, expected: bool) -> None:
    monkeypatch.setenv("FLAG_VAR", raw)

    assert env_bool("FLAG_VAR", not expected) is expected


def test_env_bool_rejects_unknown_words(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FLAG_VAR", "maybe")

    with pytest.raises(ConfigurationError):
        env_bool("FLAG_VAR", True)  # noqa: FBT003


def test_reconciliation_config_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FLEETRECON_PRICE_TOLERANCE", "0.05")
    monkeypatch.setenv("FLEETRECON_FRAGMENT_DATE_WINDOW_DAYS", "90")
    monkeypatch.setenv("FLEETRECON_ATTACH_DOCUMENTS", "0")
    monkeypatch.delenv("FLEETRECON_POTENTIAL_DATE_WINDOW_DAYS", raising=False)

    config = get_reconciliation_config()

    assert config == ReconciliationConfig(
        price_tolerance=0.05,
        potential_date_window_days=30,
        fragment_date_window_days=90,
        attach_documents=False,
    )


def test_database_uri_prefers_environment(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    monkeypatch.setenv("FLEETRECON_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("DATABASE_URI", "sqlite+pysqlite:///:memory:")
    assert get_database_config().uri == "sqlite+pysqlite:///:memory:"

    monkeypatch.delenv("DATABASE_URI")
    expected = f"sqlite+pysqlite:///{tmp_path.resolve() / 'fleet.db'}"
    assert get_database_config().uri == expected


def test_storage_config_creates_documents_dir(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    monkeypatch.setenv("FLEETRECON_DATA_DIR", str(tmp_path / "data"))

    documents = get_storage_config().documents_dir()

    assert documents == (tmp_path / "data").resolve() / "documents"
    assert documents.is_dir()


def test_storage_config_respects_xdg_data_home(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    monkeypatch.delenv("FLEETRECON_DATA_DIR", raising=False)
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))

    assert get_storage_config().data_dir == Path(tmp_path).resolve() / "fleetrecon"


def test_resolve_log_level(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("FLEETRECON_LOG_LEVEL", raising=False)
    assert resolve_log_level() == logging.INFO

    monkeypatch.setenv("FLEETRECON_LOG_LEVEL", "debug")
    assert resolve_log_level() == logging.DEBUG

    monkeypatch.setenv("FLEETRECON_LOG_LEVEL", "chatty")
    with pytest.raises(ConfigurationError):
        resolve_log_level()
