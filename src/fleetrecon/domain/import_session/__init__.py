"""Review state for one extracted batch and the executor that commits it."""

from .commit import (
    TITLE_FAILED,
    TITLE_PARTIAL,
    TITLE_SUCCESS,
    CommitExecutor,
    CommitFailure,
    CommitResult,
    ItemOutcome,
    OutcomeKind,
    build_asset_payload,
    resolve_parent_id,
    validate_for_commit,
)
from .errors import (
    CommitBlockedError,
    InvalidAttachmentActionError,
    InvalidModeTransitionError,
    InvalidParentError,
    ReconciliationError,
    UnknownFieldError,
    UnknownItemError,
)
from .items import MANUAL_SOURCE, ExistingParent, ImportSessionItem, ParentRef, PendingParent
from .review import ReviewSession
from .state import (
    ImportSession,
    apply_attachment_action,
    apply_attachment_edit,
    apply_attachment_verdict,
    apply_backfill_toggle,
    apply_category,
    apply_dismiss_fragment_group,
    apply_field_edit,
    apply_field_revert,
    apply_merge,
    apply_mode_change,
    apply_parent,
    apply_select_all,
    apply_selection,
    recompute_verdict,
    start_session,
    transition_mode,
    unresolved_items,
)

__all__ = [
    "MANUAL_SOURCE",
    "TITLE_FAILED",
    "TITLE_PARTIAL",
    "TITLE_SUCCESS",
    "CommitBlockedError",
    "CommitExecutor",
    "CommitFailure",
    "CommitResult",
    "ExistingParent",
    "ImportSession",
    "ImportSessionItem",
    "InvalidAttachmentActionError",
    "InvalidModeTransitionError",
    "InvalidParentError",
    "ItemOutcome",
    "OutcomeKind",
    "ParentRef",
    "PendingParent",
    "ReconciliationError",
    "ReviewSession",
    "UnknownFieldError",
    "UnknownItemError",
    "apply_attachment_action",
    "apply_attachment_edit",
    "apply_attachment_verdict",
    "apply_backfill_toggle",
    "apply_category",
    "apply_dismiss_fragment_group",
    "apply_field_edit",
    "apply_field_revert",
    "apply_merge",
    "apply_mode_change",
    "apply_parent",
    "apply_select_all",
    "apply_selection",
    "build_asset_payload",
    "recompute_verdict",
    "resolve_parent_id",
    "start_session",
    "transition_mode",
    "unresolved_items",
    "validate_for_commit",
]
