"""Declarative rule configuration for the influence domain."""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import TypeAdapter

from .enums import ControlLevel
from .models import NO_BENEFITS, BenefitSet

if TYPE_CHECKING:
    from frontier_influence.config import Settings


@dataclass(frozen=True, slots=True)
class InfluenceRules:
    """Bounds applied by the ledger."""

    max_value: float = 100.0
    default_floor: float = 5.0


@dataclass(frozen=True, slots=True)
class ControlThresholds:
    """Inclusive lower bounds of each control level for the leading faction."""

    disputed: float = 30.0
    controlled: float = 50.0
    dominated: float = 70.0


@dataclass(frozen=True, slots=True)
class DecayRules:
    """Daily drift toward equilibrium."""

    rate: float = 0.01
    max_step: float = 2.0


@dataclass(frozen=True, slots=True)
class DonationRules:
    """Conversion of donated gold into influence."""

    influence_per_gold: float = 0.01
    max_influence: float = 10.0


@dataclass(frozen=True, slots=True)
class BenefitTable:
    """Benefit tiers keyed by control level. Contested never grants anything."""

    disputed: BenefitSet = BenefitSet(
        shop_discount=0.05,
        reputation_gain_bonus=0.05,
        crime_heat_reduction=0.05,
        job_income_bonus=0.05,
    )
    controlled: BenefitSet = BenefitSet(
        shop_discount=0.15,
        reputation_gain_bonus=0.10,
        crime_heat_reduction=0.15,
        job_income_bonus=0.10,
    )
    dominated: BenefitSet = BenefitSet(
        shop_discount=0.25,
        reputation_gain_bonus=0.20,
        crime_heat_reduction=0.25,
        job_income_bonus=0.20,
    )

    def for_level(self, level: ControlLevel) -> BenefitSet:
        if level is ControlLevel.DOMINATED:
            return self.dominated
        if level is ControlLevel.CONTROLLED:
            return self.controlled
        if level is ControlLevel.DISPUTED:
            return self.disputed
        return NO_BENEFITS


@dataclass(frozen=True, slots=True)
class RulesConfig:
    """Top-level configuration container for all influence rules."""

    influence: InfluenceRules = InfluenceRules()
    thresholds: ControlThresholds = ControlThresholds()
    decay: DecayRules = DecayRules()
    donation: DonationRules = DonationRules()
    benefits: BenefitTable = BenefitTable()


DEFAULT_RULES = RulesConfig()

_BENEFIT_OVERRIDES: TypeAdapter[dict[ControlLevel, BenefitSet]] = TypeAdapter(
    dict[ControlLevel, BenefitSet]
)


def load_benefit_table(path: Path, *, base: BenefitTable | None = None) -> BenefitTable:
    """Read benefit tiers from a JSON file.

    The file maps control level names to benefit objects, e.g.
    ``{"dominated": {"shop_discount": 0.3}}``. Levels missing from the file keep
    the values of ``base``; a ``contested`` entry is rejected.
    """
    base = base or BenefitTable()
    overrides = _BENEFIT_OVERRIDES.validate_python(json.loads(path.read_text("utf-8")))
    if ControlLevel.CONTESTED in overrides:
        raise ValueError("Contested territories cannot grant benefits")
    return replace(
        base,
        **{str(level): benefits for level, benefits in overrides.items()},
    )


def rules_from_settings(settings: Settings) -> RulesConfig:
    """Build the rule set described by the application settings."""
    benefits = BenefitTable()
    if settings.benefit_table_path is not None:
        benefits = load_benefit_table(settings.benefit_table_path)
    return RulesConfig(
        influence=InfluenceRules(default_floor=settings.default_floor),
        decay=DecayRules(rate=settings.decay_rate, max_step=settings.decay_max_step),
        donation=DonationRules(
            influence_per_gold=settings.influence_per_gold,
            max_influence=settings.max_donation_influence,
        ),
        benefits=benefits,
    )
