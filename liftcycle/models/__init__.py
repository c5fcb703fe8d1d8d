"""Storage models and shared enumerations."""
from liftcycle.models.enums import (
    Adjustment,
    FatigueLevel,
    ItemType,
    ProgressRate,
    RPETrend,
    TrackingType,
)
from liftcycle.models.item import StoreItem

__all__ = [
    "Adjustment",
    "FatigueLevel",
    "ItemType",
    "ProgressRate",
    "RPETrend",
    "TrackingType",
    "StoreItem",
]
