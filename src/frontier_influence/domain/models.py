"""Dataclasses describing influence state independent of the database.

The services translate ORM rows into these types so the pure rule functions
(control resolution, benefits, decay) never touch a session.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import NewType

from .enums import ControlLevel, InfluenceSource, TerritoryCategory

# --- Strongly typed identifiers -------------------------------------------------

TerritoryID = NewType("TerritoryID", str)
FactionID = NewType("FactionID", str)
ActorID = NewType("ActorID", str)


# --- Value objects --------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ControlState:
    """Derived control classification of one territory."""

    level: ControlLevel
    controlling_faction: FactionID | None
    leading_value: float = 0.0
    runner_up_value: float = 0.0
    control_changed_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class BenefitSet:
    """Player-facing multipliers granted to the controlling faction's players."""

    shop_discount: float = 0.0
    reputation_gain_bonus: float = 0.0
    crime_heat_reduction: float = 0.0
    job_income_bonus: float = 0.0

    @property
    def is_empty(self) -> bool:
        return not any(
            (
                self.shop_discount,
                self.reputation_gain_bonus,
                self.crime_heat_reduction,
                self.job_income_bonus,
            )
        )


NO_BENEFITS = BenefitSet()


@dataclass(frozen=True, slots=True)
class ControlTransition:
    """Emitted when a mutation changes a territory's controller or level."""

    territory_id: TerritoryID
    previous: ControlState
    current: ControlState
    source: InfluenceSource
    occurred_at: datetime

    @property
    def controller_changed(self) -> bool:
        return self.previous.controlling_faction != self.current.controlling_faction

    @property
    def level_changed(self) -> bool:
        return self.previous.level != self.current.level


@dataclass(frozen=True, slots=True)
class InfluenceResult:
    """Outcome of a single ledger mutation."""

    territory_id: TerritoryID
    faction_id: FactionID
    previous_value: float
    new_value: float
    requested_delta: float
    event_id: int
    control: ControlState
    transitioned: bool = False
    level_changed: bool = False

    @property
    def applied_delta(self) -> float:
        return self.new_value - self.previous_value


@dataclass(frozen=True, slots=True)
class InfluenceRecord:
    """Immutable history entry as exposed to consumers."""

    id: int
    territory_id: TerritoryID
    faction_id: FactionID
    delta: float
    applied_delta: float
    resulting_value: float
    source: InfluenceSource
    actor_id: ActorID | None
    recorded_at: datetime


@dataclass(frozen=True, slots=True)
class HistoryFilter:
    """Filter for history queries; every field is optional."""

    territory_id: TerritoryID | None = None
    faction_id: FactionID | None = None
    actor_id: ActorID | None = None
    source: InfluenceSource | None = None
    since: datetime | None = None
    until: datetime | None = None


@dataclass(frozen=True, slots=True)
class HistoryPage:
    items: list[InfluenceRecord]
    total: int
    offset: int
    limit: int

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.items) < self.total


@dataclass(frozen=True, slots=True)
class Contribution:
    """Total influence an actor has pushed into one (territory, faction) pair."""

    actor_id: ActorID
    territory_id: TerritoryID
    faction_id: FactionID
    total_delta: float
    event_count: int


@dataclass(slots=True)
class TerritorySummary:
    """Read-optimized view of a territory."""

    id: TerritoryID
    name: str
    category: TerritoryCategory
    strategic_value: int
    influence_by_faction: dict[FactionID, float]
    control: ControlState
    active_benefits: BenefitSet = NO_BENEFITS


@dataclass(slots=True)
class FactionOverview:
    """Aggregate control counts for one faction."""

    faction_id: FactionID
    dominated_count: int = 0
    controlled_count: int = 0
    disputed_count: int = 0
    territories: list[TerritorySummary] = field(default_factory=list)
    total_influence: float = 0.0

    @property
    def dominated_territories(self) -> list[TerritoryID]:
        return [t.id for t in self.territories if t.control.level is ControlLevel.DOMINATED]


@dataclass(frozen=True, slots=True)
class TerritorySeed:
    """Starting distribution for one territory, supplied at world initialization."""

    id: TerritoryID
    name: str
    category: TerritoryCategory = TerritoryCategory.SETTLEMENT
    strategic_value: int = 5
    influence: Mapping[FactionID, float] = field(default_factory=dict)
    floors: Mapping[FactionID, float] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class DecayReport:
    """Summary of one decay run."""

    day: date
    territories_processed: int = 0
    territories_skipped: int = 0
    territories_failed: int = 0
    adjustments: int = 0
    failed_territories: tuple[TerritoryID, ...] = ()
    cancelled: bool = False
