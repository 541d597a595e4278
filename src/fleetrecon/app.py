"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING

from fleetrecon.adapters.extraction import load_batch
from fleetrecon.adapters.sqlalchemy import SqlAlchemyRecordStore, is_started, startup
from fleetrecon.config import get_reconciliation_config, get_storage_config
from fleetrecon.domain.import_session import ReviewSession

if TYPE_CHECKING:
    from pathlib import Path

    from fleetrecon.config import ReconciliationConfig
    from fleetrecon.domain.import_session import CommitResult
    from fleetrecon.domain.ports import RecordStore

log = getLogger(__name__)


def build_sqlalchemy_store(*, database_uri: str | None = None) -> SqlAlchemyRecordStore:
    """Start the SQLAlchemy adapter on first use and open a store on it."""

    if not is_started():
        startup(database_uri=database_uri)
    return SqlAlchemyRecordStore(documents_dir=get_storage_config().documents_dir())


async def open_review(
    batch_path: Path,
    *,
    store: RecordStore,
    config: ReconciliationConfig | None = None,
    merge_fragments: bool = False,
) -> ReviewSession:
    """Load a batch file and reconcile it against the store's registry."""

    batch = load_batch(batch_path)
    effective_config = config or get_reconciliation_config()
    review = await ReviewSession.open(store, batch, config=effective_config)
    log.info(
        "Loaded %s: candidates=%s, fragment_groups=%s",
        batch_path.name,
        len(batch.candidates),
        len(review.fragment_groups),
    )
    if merge_fragments and review.fragment_groups:
        merged = review.merge_all_fragment_groups()
        log.info("Merged %s fragment group(s)", merged)
    return review


def review_extraction_batch(
    batch_path: Path,
    *,
    store: RecordStore | None = None,
    database_uri: str | None = None,
    config: ReconciliationConfig | None = None,
    merge_fragments: bool = False,
) -> ReviewSession:
    """Synchronous wrapper around ``open_review`` for the CLI."""

    effective_store = store or build_sqlalchemy_store(database_uri=database_uri)
    return asyncio.run(
        open_review(
            batch_path,
            store=effective_store,
            config=config,
            merge_fragments=merge_fragments,
        )
    )


async def import_batch(
    batch_path: Path,
    *,
    store: RecordStore,
    config: ReconciliationConfig | None = None,
    merge_fragments: bool = False,
    attach_documents: bool | None = None,
) -> CommitResult:
    """Reconcile a batch with its default decisions and commit it."""

    review = await open_review(
        batch_path,
        store=store,
        config=config,
        merge_fragments=merge_fragments,
    )
    result = await review.commit(attach_documents=attach_documents)
    log.info(f"Finished import of {batch_path.name}: {result.title} ({result.description})")
    return result


def import_extraction_batch(
    batch_path: Path,
    *,
    store: RecordStore | None = None,
    database_uri: str | None = None,
    config: ReconciliationConfig | None = None,
    merge_fragments: bool = False,
    attach_documents: bool | None = None,
) -> CommitResult:
    """Synchronous wrapper around ``import_batch`` for the CLI."""

    effective_store = store or build_sqlalchemy_store(database_uri=database_uri)
    return asyncio.run(
        import_batch(
            batch_path,
            store=effective_store,
            config=config,
            merge_fragments=merge_fragments,
            attach_documents=attach_documents,
        )
    )
