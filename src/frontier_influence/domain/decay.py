"""Pure decay arithmetic; the scheduling lives in the decay service."""

from __future__ import annotations

from .rules_config import DEFAULT_RULES, RulesConfig


def equilibrium(faction_count: int, *, rules: RulesConfig = DEFAULT_RULES) -> float:
    """Value every faction drifts toward: the maximum split evenly over all factions."""

    if faction_count <= 0:
        raise ValueError("faction_count must be positive")
    return rules.influence.max_value / faction_count


def decay_delta(
    value: float,
    floor: float,
    target: float,
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> float:
    """Delta one decay run applies to ``value``.

    Closes ``rules.decay.rate`` of the gap to ``target``, bounded by
    ``rules.decay.max_step`` in either direction. A faction at or below its floor
    receives no downward movement. Returns 0.0 when nothing should be applied.
    """

    step = rules.decay.max_step
    delta = max(-step, min(step, (target - value) * rules.decay.rate))
    if delta < 0 and value <= floor:
        return 0.0
    return delta
