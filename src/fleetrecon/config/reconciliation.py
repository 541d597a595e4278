"""Tunables for duplicate detection, fragment grouping and commit."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from .env import env_bool, env_float, env_int

DEFAULT_PRICE_TOLERANCE: Final[float] = 0.10
DEFAULT_POTENTIAL_DATE_WINDOW_DAYS: Final[int] = 30
DEFAULT_FRAGMENT_DATE_WINDOW_DAYS: Final[int] = 60


@dataclass(frozen=True, slots=True)
class ReconciliationConfig:
    """Thresholds used by the matchers plus the document-attachment switch."""

    price_tolerance: float = DEFAULT_PRICE_TOLERANCE
    potential_date_window_days: int = DEFAULT_POTENTIAL_DATE_WINDOW_DAYS
    fragment_date_window_days: int = DEFAULT_FRAGMENT_DATE_WINDOW_DAYS
    attach_documents: bool = True


def get_reconciliation_config() -> ReconciliationConfig:
    return ReconciliationConfig(
        price_tolerance=env_float("FLEETRECON_PRICE_TOLERANCE", DEFAULT_PRICE_TOLERANCE),
        potential_date_window_days=env_int(
            "FLEETRECON_POTENTIAL_DATE_WINDOW_DAYS", DEFAULT_POTENTIAL_DATE_WINDOW_DAYS
        ),
        fragment_date_window_days=env_int(
            "FLEETRECON_FRAGMENT_DATE_WINDOW_DAYS", DEFAULT_FRAGMENT_DATE_WINDOW_DAYS
        ),
        attach_documents=env_bool("FLEETRECON_ATTACH_DOCUMENTS", True),  # noqa: FBT003
    )
