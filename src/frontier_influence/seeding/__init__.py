"""World seed files: the starting faction catalog and influence distribution."""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel, Field, model_validator

from frontier_influence.domain.enums import TerritoryCategory
from frontier_influence.domain.models import FactionID, TerritoryID, TerritorySeed


class FactionSeed(BaseModel):
    """One faction in the catalog."""

    id: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1)
    default_floor: float | None = Field(default=None, ge=0.0, le=100.0)


class TerritorySeedModel(BaseModel):
    """Starting state of one territory."""

    id: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1)
    category: TerritoryCategory = TerritoryCategory.SETTLEMENT
    strategic_value: int = Field(default=5, ge=1, le=10)
    influence: dict[str, float] = Field(default_factory=dict)
    floors: dict[str, float] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_bounds(self) -> TerritorySeedModel:
        for faction_id, value in {**self.influence, **self.floors}.items():
            if not 0.0 <= value <= 100.0:
                raise ValueError(
                    f"territory {self.id}: value {value} for {faction_id} outside [0, 100]"
                )
        return self

    def to_domain(self) -> TerritorySeed:
        return TerritorySeed(
            id=TerritoryID(self.id),
            name=self.name,
            category=self.category,
            strategic_value=self.strategic_value,
            influence={FactionID(k): v for k, v in self.influence.items()},
            floors={FactionID(k): v for k, v in self.floors.items()},
        )


class WorldSeed(BaseModel):
    """Top-level document of a world seed file."""

    format_version: int = 1
    factions: list[FactionSeed]
    territories: list[TerritorySeedModel] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_references(self) -> WorldSeed:
        known = {faction.id for faction in self.factions}
        for territory in self.territories:
            unknown = (set(territory.influence) | set(territory.floors)) - known
            if unknown:
                raise ValueError(
                    f"territory {territory.id} references unknown factions: {sorted(unknown)}"
                )
        return self

    def territory_seeds(self) -> list[TerritorySeed]:
        return [territory.to_domain() for territory in self.territories]


def load_world(path: Path | str) -> WorldSeed:
    """Read and validate a JSON world seed file."""

    return WorldSeed.model_validate(json.loads(Path(path).read_text(encoding="utf-8")))
