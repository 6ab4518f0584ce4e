"""Pure control-level resolution for a territory's influence snapshot."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime

from .enums import ControlLevel
from .models import ControlState, FactionID
from .rules_config import DEFAULT_RULES, ControlThresholds, RulesConfig

CONTESTED = ControlState(level=ControlLevel.CONTESTED, controlling_faction=None)


def classify(value: float, thresholds: ControlThresholds) -> ControlLevel:
    """Map the leading faction's value to a control level."""

    if value >= thresholds.dominated:
        return ControlLevel.DOMINATED
    if value >= thresholds.controlled:
        return ControlLevel.CONTROLLED
    if value >= thresholds.disputed:
        return ControlLevel.DISPUTED
    return ControlLevel.CONTESTED


def resolve_control(
    snapshot: Mapping[FactionID, float],
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> ControlState:
    """Resolve the control state of one territory.

    ``snapshot`` maps faction ids to their current value; absent factions count
    as zero. A tie at the maximum resolves to contested regardless of the value,
    and so does a leader below the disputed threshold. The returned state never
    carries ``control_changed_at``; that is owned by the caller persisting it.
    """

    leader: FactionID | None = None
    max_val = 0.0
    second_val = 0.0
    for faction_id, value in snapshot.items():
        if leader is None or value > max_val:
            if leader is not None:
                second_val = max_val
            leader, max_val = faction_id, value
        elif value > second_val or value == max_val:
            second_val = value

    if leader is None:
        return CONTESTED

    level = classify(max_val, rules.thresholds)
    if level is ControlLevel.CONTESTED or second_val == max_val:
        return ControlState(
            level=ControlLevel.CONTESTED,
            controlling_faction=None,
            leading_value=max_val,
            runner_up_value=second_val,
        )

    return ControlState(
        level=level,
        controlling_faction=leader,
        leading_value=max_val,
        runner_up_value=second_val,
    )


def with_change_time(
    resolved: ControlState,
    previous: ControlState,
    now: datetime,
) -> ControlState:
    """Stamp ``resolved`` with the time its controller took over.

    The timestamp moves only when the controlling faction differs from the
    previous one, including transitions to and from no controller.
    """

    changed_at = previous.control_changed_at
    if resolved.controlling_faction != previous.controlling_faction:
        changed_at = now
    return ControlState(
        level=resolved.level,
        controlling_faction=resolved.controlling_faction,
        leading_value=resolved.leading_value,
        runner_up_value=resolved.runner_up_value,
        control_changed_at=changed_at,
    )
