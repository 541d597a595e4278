# ruff: noqa: T201

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from fleetrecon.adapters.extraction import BatchPayloadError
from fleetrecon.app import import_extraction_batch, review_extraction_batch
from fleetrecon.config import ConfigurationError, configure_logging, get_reconciliation_config
from fleetrecon.domain.import_session import CommitBlockedError, ExistingParent, PendingParent
from fleetrecon.domain.model import ImportMode

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from fleetrecon.domain.import_session import (
        CommitResult,
        ImportSession,
        ImportSessionItem,
    )

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile extracted equipment batches")
    subparsers = parser.add_subparsers(dest="command", required=True)

    review = subparsers.add_parser("review", help="Show the reconciliation plan for a batch")
    review.add_argument("batch", type=Path, help="Path to the extraction batch JSON file")
    review.add_argument(
        "--merge-fragments",
        action="store_true",
        help="Merge detected fragment groups before printing the plan",
    )
    review.add_argument(
        "--database-uri",
        type=str,
        help="SQLAlchemy database URI (defaults to DATABASE_URI or the data dir)",
    )

    import_ = subparsers.add_parser("import", help="Commit a batch with its default decisions")
    import_.add_argument("batch", type=Path, help="Path to the extraction batch JSON file")
    import_.add_argument(
        "--merge-fragments",
        action="store_true",
        help="Merge detected fragment groups before committing",
    )
    import_.add_argument(
        "--no-documents",
        action="store_true",
        help="Do not attach source documents to the written assets",
    )
    import_.add_argument(
        "--database-uri",
        type=str,
        help="SQLAlchemy database URI (defaults to DATABASE_URI or the data dir)",
    )

    return parser.parse_args(list(argv))


def _describe_parent(session: ImportSession, item: ImportSessionItem) -> str:
    match item.parent:
        case ExistingParent(asset_id=asset_id):
            return f"asset {asset_id}"
        case PendingParent(item_id=item_id):
            parent = session.find(item_id)
            return f"batch item {parent.name}" if parent is not None else "missing item"
        case _:
            return "unresolved"


def format_item(session: ImportSession, item: ImportSessionItem) -> list[str]:
    selected = "x" if item.selected else " "
    lines = [
        f"[{selected}] #{item.index + 1} {item.name} ({item.category}) -> {item.mode.value}"
    ]
    verdict = item.verdict
    if verdict.is_match:
        reason = verdict.reason.value if verdict.reason is not None else "?"
        lines.append(
            f"      {verdict.status.value} duplicate of {verdict.matched_display_name} "
            f"[{reason}]"
        )
        lines.extend(
            f"      backfill {diff.label}: {diff.existing_value!r} -> {diff.candidate_value!r}"
            + ("" if diff.will_apply else " (off)")
            for diff in verdict.backfillable_fields
        )
    if item.mode is ImportMode.ATTACHMENT:
        lines.append(f"      attachment of {_describe_parent(session, item)}")
    return lines


def format_plan(session: ImportSession) -> list[str]:
    lines: list[str] = []
    for item in session.items:
        lines.extend(format_item(session, item))
    for group in session.fragment_groups:
        duplicates = ", ".join(f"#{index + 1}" for index in group.duplicate_indices)
        lines.append(f"fragments: #{group.primary_index + 1} <- {duplicates} ({group.reason})")
    unresolved = session.unresolved_items
    if unresolved:
        lines.append("unresolved: " + ", ".join(item.name for item in unresolved))
    return lines


def format_result(result: CommitResult) -> list[str]:
    lines = [f"{result.title}: {result.description}"]
    for outcome in result.outcomes:
        detail = f" ({outcome.detail})" if outcome.detail else ""
        lines.append(f"  {outcome.kind.value}: {outcome.name}{detail}")
    lines.extend(f"  failed: {failure.name}: {failure.error}" for failure in result.failures)
    if result.documents_uploaded or result.documents_skipped:
        lines.append(
            f"  documents: {result.documents_uploaded} uploaded, "
            f"{result.documents_skipped} skipped"
        )
    return lines


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        config = get_reconciliation_config()
    except (ValueError, ConfigurationError):
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command == "review":
            review = review_extraction_batch(
                parsed_args.batch,
                database_uri=parsed_args.database_uri,
                config=config,
                merge_fragments=parsed_args.merge_fragments,
            )
            for line in format_plan(review.state):
                print(line)
        elif parsed_args.command == "import":
            result = import_extraction_batch(
                parsed_args.batch,
                database_uri=parsed_args.database_uri,
                config=config,
                merge_fragments=parsed_args.merge_fragments,
                attach_documents=False if parsed_args.no_documents else None,
            )
            for line in format_result(result):
                print(line)
            if result.failures and not result.succeeded:
                sys.exit(1)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except (BatchPayloadError, CommitBlockedError):
        log.exception("Batch cannot be processed")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error during import")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
