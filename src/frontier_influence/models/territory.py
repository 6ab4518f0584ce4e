"""Territory and per-faction influence models.

``territory_influence`` holds one row per territory together with its cached
control classification and the decay idempotency marker. The influence values
themselves live in ``faction_influence``, one row per (territory, faction) pair
that has ever been touched; rows are only ever changed through a single
conditional UPDATE issued by the ledger.
"""

from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    Date,
    Float,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, UTCDateTime

if TYPE_CHECKING:
    from .faction import Faction


class Territory(Base, TimestampMixin):
    """A territory factions compete over.

    Attributes:
        id: Stable identifier
        name: Display name
        category: ``settlement`` or ``wilderness``
        strategic_value: Static 1-10 weight, informational only
        control_level: Cached control level
        controlling_faction_id: Cached controller, NULL when contested
        control_changed_at: When the controller identity last changed
        last_decay_date: Day key of the last completed decay run
    """

    __tablename__ = "territory_influence"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False, default="settlement")
    strategic_value: Mapped[int] = mapped_column(Integer, nullable=False, default=5)

    control_level: Mapped[str] = mapped_column(String, nullable=False, default="contested")
    controlling_faction_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("factions.id"), nullable=True
    )
    control_changed_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(), nullable=True
    )
    last_decay_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    influences: Mapped[list["FactionInfluence"]] = relationship(
        "FactionInfluence", back_populates="territory", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint(
            "category IN ('settlement', 'wilderness')",
            name="ck_territory_category",
        ),
        CheckConstraint(
            "strategic_value >= 1 AND strategic_value <= 10",
            name="ck_territory_strategic_value",
        ),
        CheckConstraint(
            "control_level IN ('contested', 'disputed', 'controlled', 'dominated')",
            name="ck_territory_control_level",
        ),
    )

    def __repr__(self) -> str:
        return f"<Territory(id='{self.id}', level='{self.control_level}')>"


class FactionInfluence(Base):
    """One faction's influence in one territory.

    Attributes:
        territory_id: Territory half of the composite key
        faction_id: Faction half of the composite key
        value: Current influence, kept within [floor, 100] by the ledger
        floor: Minimum this pair may fall to
    """

    __tablename__ = "faction_influence"

    territory_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("territory_influence.id"), primary_key=True
    )
    faction_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("factions.id"), primary_key=True
    )
    value: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    floor: Mapped[float] = mapped_column(Float, nullable=False, default=5.0)

    territory: Mapped["Territory"] = relationship("Territory", back_populates="influences")
    faction: Mapped["Faction"] = relationship("Faction", back_populates="influences")

    __table_args__ = (
        CheckConstraint("value >= 0 AND value <= 100", name="ck_faction_influence_value"),
        CheckConstraint("floor >= 0 AND floor <= 100", name="ck_faction_influence_floor"),
    )

    def __repr__(self) -> str:
        return (
            f"<FactionInfluence(territory='{self.territory_id}', "
            f"faction='{self.faction_id}', value={self.value})>"
        )
