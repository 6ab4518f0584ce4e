"""Faction catalog model.

The catalog defines the full set of factions; its size is the ``N`` used for the
decay equilibrium, so a faction counts even where it has no presence.
"""

from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Float, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampCreatedMixin

if TYPE_CHECKING:
    from .territory import FactionInfluence


class Faction(Base, TimestampCreatedMixin):
    """A faction competing for territory.

    Attributes:
        id: Stable identifier (e.g. ``settler_alliance``)
        name: Display name
        default_floor: Floor given to new influence rows for this faction
    """

    __tablename__ = "factions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    default_floor: Mapped[float | None] = mapped_column(Float, nullable=True)

    influences: Mapped[list["FactionInfluence"]] = relationship(
        "FactionInfluence", back_populates="faction"
    )

    __table_args__ = (
        CheckConstraint(
            "default_floor IS NULL OR (default_floor >= 0 AND default_floor <= 100)",
            name="ck_factions_default_floor",
        ),
    )

    def __repr__(self) -> str:
        return f"<Faction(id='{self.id}', name='{self.name}')>"
