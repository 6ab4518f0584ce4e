"""Influence history model.

Every successful ledger mutation appends exactly one row. Rows are never
updated or deleted; ordering by ``id`` within a (territory, faction) pair is the
order in which the mutations were committed.
"""

from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from frontier_influence.domain.enums import InfluenceSource

from .base import Base, UTCDateTime, utc_now

_SOURCES = ", ".join(f"'{source.value}'" for source in InfluenceSource)


class InfluenceEvent(Base):
    """Immutable audit record of one influence mutation.

    Attributes:
        id: Monotonic primary key
        territory_id: Territory that was mutated
        faction_id: Faction whose value changed
        delta: Delta requested by the producer (pre-clamp)
        applied_delta: Delta that actually landed after clamping
        resulting_value: Value after the mutation
        source: Producer category
        actor_id: Character or gang responsible, if any
        recorded_at: UTC time of the mutation
    """

    __tablename__ = "influence_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    territory_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("territory_influence.id"), nullable=False
    )
    faction_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("factions.id"), nullable=False
    )
    delta: Mapped[float] = mapped_column(Float, nullable=False)
    applied_delta: Mapped[float] = mapped_column(Float, nullable=False)
    resulting_value: Mapped[float] = mapped_column(Float, nullable=False)
    source: Mapped[str] = mapped_column(String(32), nullable=False)
    actor_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    recorded_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=utc_now
    )

    __table_args__ = (
        CheckConstraint(f"source IN ({_SOURCES})", name="ck_influence_history_source"),
        Index("idx_influence_history_territory_time", "territory_id", "recorded_at"),
        Index("idx_influence_history_actor", "actor_id"),
        Index("idx_influence_history_pair", "territory_id", "faction_id", "id"),
    )

    def __repr__(self) -> str:
        return (
            f"<InfluenceEvent(id={self.id}, territory='{self.territory_id}', "
            f"faction='{self.faction_id}', delta={self.delta}, source='{self.source}')>"
        )
