"""History Log queries.

The log is append-only; the ledger is its only writer. This service answers
audit queries, per-actor contribution totals, and can replay a pair's history
to verify it reproduces the stored value.
"""

from sqlalchemy import func, select
from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

from frontier_influence.domain.enums import InfluenceSource
from frontier_influence.domain.models import (
    ActorID,
    Contribution,
    FactionID,
    HistoryFilter,
    HistoryPage,
    InfluenceRecord,
    TerritoryID,
)
from frontier_influence.domain.rules_config import DEFAULT_RULES, RulesConfig
from frontier_influence.models import FactionInfluence, InfluenceEvent, as_utc

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 500


def to_record(event: InfluenceEvent) -> InfluenceRecord:
    """Translate an ORM history row into the immutable domain record."""
    return InfluenceRecord(
        id=event.id,
        territory_id=TerritoryID(event.territory_id),
        faction_id=FactionID(event.faction_id),
        delta=event.delta,
        applied_delta=event.applied_delta,
        resulting_value=event.resulting_value,
        source=InfluenceSource(event.source),
        actor_id=ActorID(event.actor_id) if event.actor_id is not None else None,
        recorded_at=as_utc(event.recorded_at),
    )


def _apply_filter(stmt: Select, criteria: HistoryFilter) -> Select:
    if criteria.territory_id is not None:
        stmt = stmt.where(InfluenceEvent.territory_id == criteria.territory_id)
    if criteria.faction_id is not None:
        stmt = stmt.where(InfluenceEvent.faction_id == criteria.faction_id)
    if criteria.actor_id is not None:
        stmt = stmt.where(InfluenceEvent.actor_id == criteria.actor_id)
    if criteria.source is not None:
        stmt = stmt.where(InfluenceEvent.source == InfluenceSource(criteria.source).value)
    if criteria.since is not None:
        stmt = stmt.where(InfluenceEvent.recorded_at >= criteria.since)
    if criteria.until is not None:
        stmt = stmt.where(InfluenceEvent.recorded_at <= criteria.until)
    return stmt


class HistoryLog:
    """Read access to ``influence_history``."""

    def __init__(self, session: Session, rules: RulesConfig = DEFAULT_RULES) -> None:
        self.session = session
        self.rules = rules

    def query(
        self,
        criteria: HistoryFilter | None = None,
        *,
        offset: int = 0,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> HistoryPage:
        """Return one chronological page of events matching ``criteria``."""
        criteria = criteria or HistoryFilter()
        offset = max(offset, 0)
        limit = max(1, min(limit, MAX_PAGE_SIZE))

        total = self.session.execute(
            _apply_filter(select(func.count(InfluenceEvent.id)), criteria)
        ).scalar_one()
        rows = (
            self.session.execute(
                _apply_filter(select(InfluenceEvent), criteria)
                .order_by(InfluenceEvent.recorded_at, InfluenceEvent.id)
                .offset(offset)
                .limit(limit)
            )
            .scalars()
            .all()
        )
        return HistoryPage(
            items=[to_record(row) for row in rows],
            total=int(total),
            offset=offset,
            limit=limit,
        )

    def recent(
        self, territory_id: TerritoryID, limit: int = DEFAULT_PAGE_SIZE
    ) -> list[InfluenceRecord]:
        """Latest ``limit`` events for a territory, oldest first."""
        rows = (
            self.session.execute(
                select(InfluenceEvent)
                .where(InfluenceEvent.territory_id == territory_id)
                .order_by(InfluenceEvent.id.desc())
                .limit(max(1, min(limit, MAX_PAGE_SIZE)))
            )
            .scalars()
            .all()
        )
        return [to_record(row) for row in reversed(rows)]

    def contributions(
        self,
        actor_id: ActorID,
        *,
        territory_id: TerritoryID | None = None,
    ) -> list[Contribution]:
        """Sum of requested deltas per (territory, faction) for one actor."""
        stmt = (
            select(
                InfluenceEvent.territory_id,
                InfluenceEvent.faction_id,
                func.sum(InfluenceEvent.delta),
                func.count(InfluenceEvent.id),
            )
            .where(InfluenceEvent.actor_id == actor_id)
            .group_by(InfluenceEvent.territory_id, InfluenceEvent.faction_id)
            .order_by(InfluenceEvent.territory_id, InfluenceEvent.faction_id)
        )
        if territory_id is not None:
            stmt = stmt.where(InfluenceEvent.territory_id == territory_id)

        return [
            Contribution(
                actor_id=actor_id,
                territory_id=TerritoryID(t_id),
                faction_id=FactionID(f_id),
                total_delta=float(total or 0.0),
                event_count=int(count),
            )
            for t_id, f_id, total, count in self.session.execute(stmt).all()
        ]

    def replay(self, territory_id: TerritoryID, faction_id: FactionID) -> float:
        """Rebuild a pair's value from its history.

        Starts from zero and applies each requested delta, clamping to the
        pair's floor and the maximum after every step.
        """
        floor = self.session.execute(
            select(FactionInfluence.floor).where(
                FactionInfluence.territory_id == territory_id,
                FactionInfluence.faction_id == faction_id,
            )
        ).scalar_one_or_none()
        if floor is None:
            return 0.0

        deltas = self.session.execute(
            select(InfluenceEvent.delta)
            .where(
                InfluenceEvent.territory_id == territory_id,
                InfluenceEvent.faction_id == faction_id,
            )
            .order_by(InfluenceEvent.id)
        ).scalars()

        value = 0.0
        ceiling = self.rules.influence.max_value
        for delta in deltas:
            value = max(floor, min(ceiling, value + delta))
        return value
