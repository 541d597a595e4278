"""Errors raised by the import session and commit executor."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from fleetrecon.domain.model import ImportMode


class ReconciliationError(RuntimeError):
    """Base class for session and commit errors."""


class UnknownItemError(ReconciliationError, KeyError):
    """Raised when an action references an item id that is not in the session."""

    def __init__(self, item_id: str) -> None:
        self.item_id = item_id
        super().__init__(f"Unknown import item: {item_id}")

    def __str__(self) -> str:
        return f"Unknown import item: {self.item_id}"


class InvalidModeTransitionError(ReconciliationError):
    """Raised when a requested import mode is illegal for the item's state."""

    def __init__(self, item_id: str, mode: ImportMode, detail: str) -> None:
        self.item_id = item_id
        self.mode = mode
        super().__init__(f"Cannot switch item {item_id} to {mode.value}: {detail}")


class InvalidParentError(ReconciliationError):
    """Raised when an attachment's parent reference cannot be accepted."""


class CommitBlockedError(ReconciliationError):
    """Raised before any store call when the session cannot be committed."""

    def __init__(self, message: str, *, item_names: Sequence[str] = ()) -> None:
        self.item_names = tuple(item_names)
        super().__init__(message)


class UnknownFieldError(ReconciliationError, ValueError):
    """Raised when an edit targets a field that callers may not change."""


class InvalidAttachmentActionError(ReconciliationError):
    """Raised when an attachment action does not fit the item's state."""
