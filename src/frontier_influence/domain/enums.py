"""Enumerations used across the influence domain."""

from __future__ import annotations

from enum import StrEnum


class InfluenceSource(StrEnum):
    """Origin of an influence mutation."""

    QUEST = "quest"
    DONATION = "donation"
    COMBAT = "combat"
    CONSTRUCTION = "construction"
    EVENT = "event"
    DECAY = "decay"
    CRIME = "crime"
    GANG_ALIGNMENT = "gangAlignment"


# Sources accepted from external producers; decay is reserved for the scheduler.
PRODUCER_SOURCES: frozenset[InfluenceSource] = frozenset(
    source for source in InfluenceSource if source is not InfluenceSource.DECAY
)


class ControlLevel(StrEnum):
    """Control classification of a territory, weakest first."""

    CONTESTED = "contested"
    DISPUTED = "disputed"
    CONTROLLED = "controlled"
    DOMINATED = "dominated"


class TerritoryCategory(StrEnum):
    """Kind of territory."""

    SETTLEMENT = "settlement"
    WILDERNESS = "wilderness"
