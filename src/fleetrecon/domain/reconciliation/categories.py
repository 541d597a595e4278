"""Keyword-based category inference for extracted equipment."""

from __future__ import annotations

from typing import Final

from fleetrecon.domain.model import EquipmentCategory

type KeywordRule = tuple[EquipmentCategory, tuple[str, ...]]

_TRUCK_KEYWORDS: Final[tuple[str, ...]] = (
    "truck", "f-150", "f150", "f-250", "f-350", "f-450", "f-550", "silverado", "ram",
    "pickup", "van", "dump", "flatbed",
)  # fmt: skip

# first matching rule wins; more specific phrases come before generic ones
_RULES: Final[tuple[KeywordRule, ...]] = (
    (
        EquipmentCategory.COMMERCIAL_MOWERS,
        ("mower", "ztr", "z-turn", "zero turn", "turf", "lawn"),
    ),
    (EquipmentCategory.TRAILER, ("trailer",)),
    (
        EquipmentCategory.LIGHT_COMPACTION,
        ("plate", "jumping jack", "rammer", "walk-behind roller"),
    ),
    (EquipmentCategory.HEAVY_COMPACTION, ("compactor", "roller")),
    (EquipmentCategory.TRUCK_VEHICLE, _TRUCK_KEYWORDS),
    (
        EquipmentCategory.HANDHELD_LAWN,
        ("trimmer", "edger", "weed", "blower", "chainsaw", "hedge"),
    ),
    (EquipmentCategory.MINI_SKID, ("mini skid", "mini-skid", "dingo", "power carrier")),
    (EquipmentCategory.COMPACT_TRACK_LOADER, ("track loader", "ctl")),
    (EquipmentCategory.SKID_STEER, ("skid",)),
    (EquipmentCategory.LARGE_LOADER, ("wheel loader", "backhoe")),
    (EquipmentCategory.EXCAVATION, ("excavator", "mini ex", "digger")),
    (EquipmentCategory.SNOW, ("plow", "salt", "snow", "spreader")),
    (EquipmentCategory.DEMO_SPECIALTY, ("breaker", "demo", "concrete")),
    (EquipmentCategory.HANDHELD_POWER_TOOLS, ("drill", "saw", "grinder", "hammer")),
)


def guess_category(make: str | None, model: str | None) -> EquipmentCategory:
    """Guess a category from make/model keywords, defaulting to Shop / Other."""

    combined = f"{make or ''} {model or ''}".lower()
    for category, keywords in _RULES:
        if any(keyword in combined for keyword in keywords):
            return category
    return EquipmentCategory.SHOP_OTHER


def resolve_category(
    suggested: str | None,
    make: str | None,
    model: str | None,
) -> EquipmentCategory:
    """Use the extraction hint when it names a known category, else guess."""

    if suggested:
        try:
            return EquipmentCategory(suggested.strip())
        except ValueError:
            pass
    return guess_category(make, model)
