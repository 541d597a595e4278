"""Fuzzy equality tests for make/model pairs and attachment names."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from .normalize import normalize_key, normalize_serial, tokenize_name

if TYPE_CHECKING:
    from fleetrecon.domain.model import AttachmentRecord

MIN_KEY_LENGTH: Final[int] = 2
MIN_CONTAINED_LENGTH: Final[int] = 3
MIN_SHARED_TOKENS: Final[int] = 2
MIN_TOKEN_OVERLAP_RATIO: Final[float] = 0.66


def _keys_match(first: str, second: str) -> bool:
    if first == second:
        return True
    shorter, longer = sorted((first, second), key=len)
    return len(shorter) >= MIN_CONTAINED_LENGTH and shorter in longer


def models_match(
    make_a: str | None,
    model_a: str | None,
    make_b: str | None,
    model_b: str | None,
) -> bool:
    """Return whether two make/model pairs plausibly describe the same product line.

    ``"Cat 305"`` matches ``"CAT 305 CR"`` because the shorter model key is
    contained in the longer one and is at least three characters long.
    """

    norm_make_a = normalize_key(make_a)
    norm_model_a = normalize_key(model_a)
    norm_make_b = normalize_key(make_b)
    norm_model_b = normalize_key(model_b)

    if len(norm_make_a) < MIN_KEY_LENGTH or len(norm_model_b) < MIN_KEY_LENGTH:
        return False
    return _keys_match(norm_make_a, norm_make_b) and _keys_match(norm_model_a, norm_model_b)


def attachment_name_matches(
    name: str | None,
    serial: str | None,
    existing: AttachmentRecord,
) -> bool:
    """Compare a candidate attachment against one already stored on the parent.

    Serial numbers win when both sides carry one. Otherwise the names need two
    shared tokens, or an overlap covering 66% of the smaller token set.
    """

    candidate_serial = normalize_serial(serial)
    existing_serial = normalize_serial(existing.serial_number)
    if candidate_serial and existing_serial and candidate_serial == existing_serial:
        return True

    candidate_tokens = set(tokenize_name(name))
    existing_tokens = set(tokenize_name(existing.name))
    if not candidate_tokens or not existing_tokens:
        return False

    shared = len(candidate_tokens & existing_tokens)
    if shared >= MIN_SHARED_TOKENS:
        return True
    smaller = min(len(candidate_tokens), len(existing_tokens))
    return shared / smaller >= MIN_TOKEN_OVERLAP_RATIO
