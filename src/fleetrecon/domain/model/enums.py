"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class Confidence(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _CONFIDENCE_RANK[self]


_CONFIDENCE_RANK: dict[Confidence, int] = {
    Confidence.LOW: 0,
    Confidence.MEDIUM: 1,
    Confidence.HIGH: 2,
}


class FinancingType(StrEnum):
    OWNED = "owned"
    FINANCED = "financed"
    LEASED = "leased"


class PurchaseCondition(StrEnum):
    NEW = "new"
    USED = "used"


class SuggestedType(StrEnum):
    """Extraction hint on whether a candidate is a full asset or a sub-component."""

    ASSET = "asset"
    ATTACHMENT = "attachment"


class EquipmentStatus(StrEnum):
    ACTIVE = "Active"
    SOLD = "Sold"
    RETIRED = "Retired"
    LOST = "Lost"


class EquipmentCategory(StrEnum):
    EXCAVATION = "Excavation"
    MINI_SKID = "Mini Skid / Compact Power Carrier"
    SKID_STEER = "Skid Steer (Standard)"
    COMPACT_TRACK_LOADER = "Compact Track Loader"
    LARGE_LOADER = "Large Loader"
    TRUCK_VEHICLE = "Truck / Vehicle"
    HEAVY_COMPACTION = "Heavy Compaction Equipment"
    LIGHT_COMPACTION = "Light Compaction Equipment"
    COMMERCIAL_MOWERS = "Commercial Mowers"
    HANDHELD_LAWN = "Handheld Lawn Equipment"
    HANDHELD_POWER_TOOLS = "Handheld Power Tools"
    DEMO_SPECIALTY = "Large Demo & Specialty Tools"
    TRAILER = "Trailer"
    SNOW = "Snow Equipment"
    SHOP_OTHER = "Shop / Other"


class DuplicateStatus(StrEnum):
    NONE = "none"
    EXACT = "exact"
    POTENTIAL = "potential"


class MatchReason(StrEnum):
    """Which rule of the registry duplicate detector fired."""

    SERIAL = "serial"
    YEAR = "year"
    PRICE = "price"
    DATE = "date"


class ImportMode(StrEnum):
    NEW = "new"
    UPDATE_EXISTING = "update_existing"
    SKIP = "skip"
    ATTACHMENT = "attachment"


class AttachmentAction(StrEnum):
    CREATE = "create"
    SKIP = "skip"
    UPDATE_EXISTING = "update_existing"
    IMPORT_ANYWAY = "import_anyway"
