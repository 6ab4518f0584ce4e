"""Benefit lookup for aligned players."""

from __future__ import annotations

from .models import NO_BENEFITS, BenefitSet, ControlState, FactionID
from .rules_config import DEFAULT_RULES, RulesConfig


def compute_benefits(
    faction_id: FactionID,
    control: ControlState,
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> BenefitSet:
    """Return the benefits ``faction_id`` enjoys under ``control``.

    Only the controlling faction receives anything; every other faction, and
    every faction in a contested territory, gets the all-zero set.
    """

    if control.controlling_faction is None or control.controlling_faction != faction_id:
        return NO_BENEFITS
    return rules.benefits.for_level(control.level)


def donation_influence(gold: float, *, rules: RulesConfig = DEFAULT_RULES) -> float:
    """Convert a donation into an influence delta, capped per donation."""

    if gold <= 0:
        return 0.0
    return min(gold * rules.donation.influence_per_gold, rules.donation.max_influence)
