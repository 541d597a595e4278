from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002

from fleetrecon.adapters.sqlalchemy import (
    SqlAlchemyRecordStore,
    create_all_tables,
    shutdown,
    startup,
)

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    create_all_tables(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_record_store(sqlite_engine: Engine, tmp_path: Path) -> Iterator[SqlAlchemyRecordStore]:
    startup(engine=sqlite_engine, force=True)
    try:
        yield SqlAlchemyRecordStore(documents_dir=tmp_path / "documents")
    finally:
        shutdown()
