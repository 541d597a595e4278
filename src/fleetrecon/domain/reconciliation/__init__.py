"""Reconciliation core for extracted equipment candidates.

Layered flow:
1) normalize raw strings and dates into comparable keys
2) fuzzy-match make/model pairs and attachment names
3) classify each candidate against the fleet registry
4) group fragments of one asset inside a batch and merge them on request
5) diff registry rows against candidates to find backfillable fields
"""

from __future__ import annotations

from .attachments import (
    AttachmentDraft,
    check_attachment_duplicate,
    find_attachment_duplicate,
)
from .categories import guess_category, resolve_category
from .contracts import (
    NO_ATTACHMENT_DUPLICATE,
    NO_DUPLICATE,
    AttachmentVerdict,
    DuplicateVerdict,
    FieldDiff,
    FragmentGroup,
)
from .diff import compute_backfillable_fields
from .field_policy import BACKFILL_FIELDS, FIELD_POLICIES, MATCH_FIELDS, FieldPolicy
from .fragments import fragment_reason, group_fragments
from .matching import attachment_name_matches, models_match
from .merge import merge_candidates, merge_fragments
from .normalize import days_difference, normalize_key, normalize_serial, parse_date, tokenize_name
from .registry import detect_registry_duplicate

__all__ = [
    "BACKFILL_FIELDS",
    "FIELD_POLICIES",
    "MATCH_FIELDS",
    "NO_ATTACHMENT_DUPLICATE",
    "NO_DUPLICATE",
    "AttachmentDraft",
    "AttachmentVerdict",
    "DuplicateVerdict",
    "FieldDiff",
    "FieldPolicy",
    "FragmentGroup",
    "attachment_name_matches",
    "check_attachment_duplicate",
    "compute_backfillable_fields",
    "days_difference",
    "detect_registry_duplicate",
    "find_attachment_duplicate",
    "fragment_reason",
    "group_fragments",
    "guess_category",
    "merge_candidates",
    "merge_fragments",
    "models_match",
    "normalize_key",
    "normalize_serial",
    "parse_date",
    "resolve_category",
    "tokenize_name",
]
