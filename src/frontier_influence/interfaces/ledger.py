"""Influence Ledger Protocol Interface."""

from typing import Protocol

from frontier_influence.domain.enums import InfluenceSource
from frontier_influence.domain.models import (
    ActorID,
    ControlTransition,
    FactionID,
    InfluenceResult,
    TerritoryID,
)


class IInfluenceLedger(Protocol):
    """Protocol for the single mutation entry point of the influence store."""

    #: Control transitions caused by this ledger's writes, in order, awaiting
    #: dispatch once the surrounding transaction commits.
    transitions: list[ControlTransition]

    def apply_influence(
        self,
        territory_id: TerritoryID,
        faction_id: FactionID,
        delta: float,
        source: InfluenceSource | str,
        actor_id: ActorID | None = None,
    ) -> InfluenceResult:
        """Apply ``delta`` atomically, clamped to the pair's bounds.

        Raises:
            UnknownTerritory: ``territory_id`` does not resolve
            UnknownFaction: ``faction_id`` does not resolve
            InvalidSource: ``source`` is not a known influence source
        """
        ...

    def snapshot(self, territory_id: TerritoryID) -> dict[FactionID, float]:
        """Return the current values of every faction present in the territory."""
        ...

    def floors(self, territory_id: TerritoryID) -> dict[FactionID, float]:
        """Return the floor of every faction row in the territory."""
        ...
