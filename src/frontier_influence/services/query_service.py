"""Read-side facade over the influence store.

Every answer is computed from the live influence rows, never from the cached
classification on the territory row, so readers always see control that
matches the values they are shown. Faction overviews are the one aggregate
that scans every territory and are memoized for a short TTL.
"""

import copy
import logging
import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import replace

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from frontier_influence.domain.benefits import compute_benefits
from frontier_influence.domain.control import resolve_control
from frontier_influence.domain.enums import ControlLevel, TerritoryCategory
from frontier_influence.domain.models import (
    NO_BENEFITS,
    ActorID,
    BenefitSet,
    Contribution,
    FactionID,
    FactionOverview,
    HistoryFilter,
    HistoryPage,
    InfluenceRecord,
    TerritoryID,
    TerritorySummary,
)
from frontier_influence.domain.rules_config import DEFAULT_RULES, RulesConfig
from frontier_influence.errors import UnknownFaction, UnknownTerritory, transient_store_errors
from frontier_influence.models import Faction, FactionInfluence, Territory
from frontier_influence.services.history_service import DEFAULT_PAGE_SIZE, HistoryLog
from frontier_influence.services.ledger_service import cached_control

logger = logging.getLogger(__name__)


class QueryFacade:
    """Aggregated read access for other subsystems."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        rules: RulesConfig = DEFAULT_RULES,
        *,
        overview_ttl_seconds: float = 30.0,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._session_factory = session_factory
        self.rules = rules
        self.overview_ttl_seconds = overview_ttl_seconds
        self._monotonic = monotonic
        self._overview_cache: dict[FactionID, tuple[float, FactionOverview]] = {}
        self._cache_lock = threading.Lock()

    # ------------------------------------------------------------- territories

    def get_territory(self, territory_id: TerritoryID) -> TerritorySummary:
        with transient_store_errors(), self._session_factory() as session:
            territory = session.get(Territory, territory_id)
            if territory is None:
                raise UnknownTerritory(territory_id)
            values = self._values(session, [territory_id])
            return self._summarize(territory, values.get(territory_id, {}))

    def list_territories(self, *, level: ControlLevel | None = None) -> list[TerritorySummary]:
        """Every territory ordered by id, optionally only those at ``level``."""
        with transient_store_errors(), self._session_factory() as session:
            territories = session.execute(select(Territory).order_by(Territory.id)).scalars().all()
            values = self._values(session)
            summaries = [
                self._summarize(territory, values.get(TerritoryID(territory.id), {}))
                for territory in territories
            ]
        if level is not None:
            summaries = [s for s in summaries if s.control.level is level]
        return summaries

    def territories_by_level(self, level: ControlLevel) -> list[TerritorySummary]:
        return self.list_territories(level=level)

    def contested_territories(self) -> list[TerritorySummary]:
        return self.list_territories(level=ControlLevel.CONTESTED)

    def territories_controlled_by(self, faction_id: FactionID) -> list[TerritorySummary]:
        """Territories where ``faction_id`` is the controller at any level."""
        self._require_faction(faction_id)
        return [
            summary
            for summary in self.list_territories()
            if summary.control.controlling_faction == faction_id
        ]

    # ---------------------------------------------------------------- factions

    def get_faction_overview(self, faction_id: FactionID) -> FactionOverview:
        """Control counts for one faction, memoized for ``overview_ttl_seconds``."""
        now = self._monotonic()
        with self._cache_lock:
            cached = self._overview_cache.get(faction_id)
            if cached is not None and cached[0] > now:
                return copy.deepcopy(cached[1])

        self._require_faction(faction_id)
        overview = FactionOverview(faction_id=faction_id)
        for summary in self.list_territories():
            overview.total_influence += summary.influence_by_faction.get(faction_id, 0.0)
            if summary.control.controlling_faction != faction_id:
                continue
            overview.territories.append(summary)
            if summary.control.level is ControlLevel.DOMINATED:
                overview.dominated_count += 1
            elif summary.control.level is ControlLevel.CONTROLLED:
                overview.controlled_count += 1
            elif summary.control.level is ControlLevel.DISPUTED:
                overview.disputed_count += 1

        if self.overview_ttl_seconds > 0:
            with self._cache_lock:
                self._overview_cache[faction_id] = (
                    now + self.overview_ttl_seconds,
                    copy.deepcopy(overview),
                )
        return overview

    def invalidate(self, faction_id: FactionID | None = None) -> None:
        """Drop cached overviews for one faction, or for all of them."""
        with self._cache_lock:
            if faction_id is None:
                self._overview_cache.clear()
            else:
                self._overview_cache.pop(faction_id, None)

    def list_factions(self) -> list[FactionID]:
        with transient_store_errors(), self._session_factory() as session:
            return [
                FactionID(fid)
                for fid in session.execute(select(Faction.id).order_by(Faction.id)).scalars()
            ]

    def get_alignment_benefits(
        self, faction_id: FactionID, territory_id: TerritoryID
    ) -> BenefitSet:
        """Benefits a player aligned with ``faction_id`` enjoys in ``territory_id``."""
        self._require_faction(faction_id)
        summary = self.get_territory(territory_id)
        return compute_benefits(faction_id, summary.control, rules=self.rules)

    # ----------------------------------------------------------------- history

    def get_history(
        self,
        criteria: HistoryFilter | None = None,
        *,
        offset: int = 0,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> HistoryPage:
        with transient_store_errors(), self._session_factory() as session:
            return HistoryLog(session, self.rules).query(criteria, offset=offset, limit=limit)

    def recent_history(
        self, territory_id: TerritoryID, limit: int = DEFAULT_PAGE_SIZE
    ) -> list[InfluenceRecord]:
        with transient_store_errors(), self._session_factory() as session:
            if session.get(Territory, territory_id) is None:
                raise UnknownTerritory(territory_id)
            return HistoryLog(session, self.rules).recent(territory_id, limit)

    def get_contributions(
        self, actor_id: ActorID, *, territory_id: TerritoryID | None = None
    ) -> list[Contribution]:
        with transient_store_errors(), self._session_factory() as session:
            return HistoryLog(session, self.rules).contributions(
                actor_id, territory_id=territory_id
            )

    # ----------------------------------------------------------------- helpers

    def _require_faction(self, faction_id: FactionID) -> None:
        with transient_store_errors(), self._session_factory() as session:
            if session.get(Faction, faction_id) is None:
                raise UnknownFaction(faction_id)

    @staticmethod
    def _values(
        session: Session, territory_ids: Iterable[TerritoryID] | None = None
    ) -> dict[TerritoryID, dict[FactionID, float]]:
        stmt = select(
            FactionInfluence.territory_id, FactionInfluence.faction_id, FactionInfluence.value
        ).order_by(FactionInfluence.territory_id, FactionInfluence.faction_id)
        if territory_ids is not None:
            stmt = stmt.where(FactionInfluence.territory_id.in_(list(territory_ids)))

        values: dict[TerritoryID, dict[FactionID, float]] = {}
        for territory_id, faction_id, value in session.execute(stmt):
            values.setdefault(TerritoryID(territory_id), {})[FactionID(faction_id)] = float(value)
        return values

    def _summarize(
        self, territory: Territory, values: dict[FactionID, float]
    ) -> TerritorySummary:
        previous = cached_control(territory)
        # Reads never stamp a change time of their own; only writes move it.
        control = replace(
            resolve_control(values, rules=self.rules),
            control_changed_at=previous.control_changed_at,
        )
        if control.controlling_faction != previous.controlling_faction:
            logger.debug("territory %s control cache is stale", territory.id)

        benefits = (
            self.rules.benefits.for_level(control.level)
            if control.controlling_faction is not None
            else NO_BENEFITS
        )
        return TerritorySummary(
            id=TerritoryID(territory.id),
            name=territory.name,
            category=TerritoryCategory(territory.category),
            strategic_value=territory.strategic_value,
            influence_by_faction=values,
            control=control,
            active_benefits=benefits,
        )
