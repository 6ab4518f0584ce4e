"""Influence Ledger for the territory influence core.

The ledger is the only writer of ``faction_influence`` and ``influence_history``.
Every mutation is a single conditional UPDATE that adds the delta and clamps
the result to ``[floor, 100]`` inside the database, so concurrent writers on the
same (territory, faction) pair serialize on the row lock instead of racing a
read-modify-write in Python. In the same transaction the ledger appends the
history record and refreshes the territory's cached control classification.

The ledger never commits; the caller owns the transaction boundary (see
:class:`frontier_influence.services.influence_service.InfluenceService`).
"""

import logging
import math
from collections.abc import Callable
from datetime import datetime

from sqlalchemy import case, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from frontier_influence.domain.control import resolve_control, with_change_time
from frontier_influence.domain.enums import ControlLevel, InfluenceSource
from frontier_influence.domain.models import (
    ActorID,
    ControlState,
    ControlTransition,
    FactionID,
    InfluenceResult,
    TerritoryID,
    TerritorySeed,
)
from frontier_influence.domain.rules_config import DEFAULT_RULES, RulesConfig
from frontier_influence.errors import InvalidSource, UnknownFaction, UnknownTerritory
from frontier_influence.models import (
    Faction,
    FactionInfluence,
    InfluenceEvent,
    Territory,
    as_utc,
    utc_now,
)

logger = logging.getLogger(__name__)

# Attempts at the control-cache compare-and-set before giving up for this write;
# the next write or read recomputes from the snapshot anyway.
CONTROL_CAS_ATTEMPTS = 3


def coerce_source(source: InfluenceSource | str) -> InfluenceSource:
    """Return ``source`` as an enum member or raise ``InvalidSource``."""
    if isinstance(source, InfluenceSource):
        return source
    try:
        return InfluenceSource(source)
    except ValueError as exc:
        raise InvalidSource(source) from exc


def cached_control(territory: Territory) -> ControlState:
    """Control state as last persisted on the territory row."""
    return ControlState(
        level=ControlLevel(territory.control_level),
        controlling_faction=(
            FactionID(territory.controlling_faction_id)
            if territory.controlling_faction_id is not None
            else None
        ),
        control_changed_at=as_utc(territory.control_changed_at),
    )


class InfluenceLedger:
    """Atomic, bounded mutation of influence values within one session."""

    def __init__(
        self,
        session: Session,
        rules: RulesConfig = DEFAULT_RULES,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.session = session
        self.rules = rules
        self._clock = clock
        self.transitions: list[ControlTransition] = []

    # ------------------------------------------------------------------ writes

    def apply_influence(
        self,
        territory_id: TerritoryID,
        faction_id: FactionID,
        delta: float,
        source: InfluenceSource | str,
        actor_id: ActorID | None = None,
        *,
        floor: float | None = None,
    ) -> InfluenceResult:
        """Apply ``delta`` to the pair and record it.

        Args:
            territory_id: Territory to mutate
            faction_id: Faction whose influence changes
            delta: Signed amount requested by the producer; never rejected for
                its magnitude, the result is clamped instead
            source: Producer category
            actor_id: Character or gang responsible, if any
            floor: Floor for the pair if this call creates it; ignored otherwise

        Returns:
            InfluenceResult with the new value and control transition flags

        Raises:
            InvalidSource: ``source`` is not a known source
            UnknownTerritory: ``territory_id`` does not resolve
            UnknownFaction: ``faction_id`` does not resolve
        """
        source = coerce_source(source)
        delta = float(delta)
        if not math.isfinite(delta):
            raise ValueError(f"delta must be finite, got {delta!r}")

        new_value = self._atomic_add(territory_id, faction_id, delta)
        if new_value is None:
            self._create_pair(territory_id, faction_id, floor)
            new_value = self._atomic_add(territory_id, faction_id, delta)
            if new_value is None:  # pragma: no cover - row vanished mid-transaction
                raise RuntimeError(
                    f"influence row {territory_id}/{faction_id} missing after creation"
                )

        previous_value = self._last_recorded_value(territory_id, faction_id)
        now = self._clock()
        event = InfluenceEvent(
            territory_id=territory_id,
            faction_id=faction_id,
            delta=delta,
            applied_delta=new_value - previous_value,
            resulting_value=new_value,
            source=source.value,
            actor_id=actor_id,
            recorded_at=now,
        )
        self.session.add(event)
        self.session.flush()

        transition = self.refresh_control(territory_id, source=source, now=now)
        current = transition.current if transition else self.control_for(territory_id)

        return InfluenceResult(
            territory_id=territory_id,
            faction_id=faction_id,
            previous_value=previous_value,
            new_value=new_value,
            requested_delta=delta,
            event_id=event.id,
            control=current,
            transitioned=bool(transition and transition.controller_changed),
            level_changed=bool(transition and transition.level_changed),
        )

    def _atomic_add(
        self, territory_id: TerritoryID, faction_id: FactionID, delta: float
    ) -> float | None:
        """Add and clamp in one statement; None when the pair has no row yet."""
        raw = FactionInfluence.value + delta
        clamped = case(
            (raw > self.rules.influence.max_value, self.rules.influence.max_value),
            (raw < FactionInfluence.floor, FactionInfluence.floor),
            else_=raw,
        )
        stmt = (
            update(FactionInfluence)
            .where(
                FactionInfluence.territory_id == territory_id,
                FactionInfluence.faction_id == faction_id,
            )
            .values(value=clamped)
            .returning(FactionInfluence.value)
            .execution_options(synchronize_session=False)
        )
        value = self.session.execute(stmt).scalar_one_or_none()
        return float(value) if value is not None else None

    def _create_pair(
        self, territory_id: TerritoryID, faction_id: FactionID, floor: float | None
    ) -> None:
        """Insert a zero-valued row for a pair touched for the first time."""
        if self.session.get(Territory, territory_id) is None:
            raise UnknownTerritory(territory_id)
        faction = self.session.get(Faction, faction_id)
        if faction is None:
            raise UnknownFaction(faction_id)

        if floor is None:
            floor = (
                faction.default_floor
                if faction.default_floor is not None
                else self.rules.influence.default_floor
            )
        floor = max(0.0, min(float(floor), self.rules.influence.max_value))

        try:
            with self.session.begin_nested():
                self.session.add(
                    FactionInfluence(
                        territory_id=territory_id,
                        faction_id=faction_id,
                        value=0.0,
                        floor=floor,
                    )
                )
        except IntegrityError:
            # Another writer created the row first; its UPDATE path applies.
            logger.debug("influence row %s/%s created concurrently", territory_id, faction_id)

    def _last_recorded_value(self, territory_id: TerritoryID, faction_id: FactionID) -> float:
        """Value before this mutation: the previous history record's result.

        Runs after the UPDATE, so the row lock is held and no other writer can
        append to this pair's history in between.
        """
        stmt = (
            select(InfluenceEvent.resulting_value)
            .where(
                InfluenceEvent.territory_id == territory_id,
                InfluenceEvent.faction_id == faction_id,
            )
            .order_by(InfluenceEvent.id.desc())
            .limit(1)
        )
        value = self.session.execute(stmt).scalar_one_or_none()
        return float(value) if value is not None else 0.0

    # ----------------------------------------------------------------- control

    def refresh_control(
        self,
        territory_id: TerritoryID,
        *,
        source: InfluenceSource,
        now: datetime | None = None,
    ) -> ControlTransition | None:
        """Recompute control and store it with a compare-and-set.

        Returns the transition when the controller or the level changed, and
        queues it on :attr:`transitions` for dispatch after commit.
        """
        now = now or self._clock()
        for _ in range(CONTROL_CAS_ATTEMPTS):
            territory = self.session.get(Territory, territory_id, populate_existing=True)
            if territory is None:
                raise UnknownTerritory(territory_id)

            previous = cached_control(territory)
            resolved = resolve_control(self.snapshot(territory_id), rules=self.rules)
            current = with_change_time(resolved, previous, now)
            if (
                current.level == previous.level
                and current.controlling_faction == previous.controlling_faction
            ):
                return None

            prior_controller = (
                Territory.controlling_faction_id.is_(None)
                if previous.controlling_faction is None
                else Territory.controlling_faction_id == previous.controlling_faction
            )
            stmt = (
                update(Territory)
                .where(
                    Territory.id == territory_id,
                    Territory.control_level == previous.level.value,
                    prior_controller,
                )
                .values(
                    control_level=current.level.value,
                    controlling_faction_id=current.controlling_faction,
                    control_changed_at=current.control_changed_at,
                )
                .execution_options(synchronize_session=False)
            )
            if self.session.execute(stmt).rowcount == 1:
                transition = ControlTransition(
                    territory_id=territory_id,
                    previous=previous,
                    current=current,
                    source=source,
                    occurred_at=now,
                )
                self.transitions.append(transition)
                if transition.controller_changed:
                    logger.info(
                        "territory %s control passed from %s to %s (%s)",
                        territory_id,
                        previous.controlling_faction,
                        current.controlling_faction,
                        current.level,
                    )
                return transition

        logger.warning("gave up caching control for territory %s after contention", territory_id)
        return None

    def control_for(self, territory_id: TerritoryID) -> ControlState:
        """Resolve control from the live snapshot, stamped with the cached change time."""
        territory = self.session.get(Territory, territory_id)
        if territory is None:
            raise UnknownTerritory(territory_id)
        resolved = resolve_control(self.snapshot(territory_id), rules=self.rules)
        return with_change_time(resolved, cached_control(territory), self._clock())

    # ------------------------------------------------------------------- reads

    def snapshot(self, territory_id: TerritoryID) -> dict[FactionID, float]:
        rows = self.session.execute(
            select(FactionInfluence.faction_id, FactionInfluence.value)
            .where(FactionInfluence.territory_id == territory_id)
            .order_by(FactionInfluence.faction_id)
        ).all()
        return {FactionID(faction_id): float(value) for faction_id, value in rows}

    def floors(self, territory_id: TerritoryID) -> dict[FactionID, float]:
        rows = self.session.execute(
            select(FactionInfluence.faction_id, FactionInfluence.floor).where(
                FactionInfluence.territory_id == territory_id
            )
        ).all()
        return {FactionID(faction_id): float(floor) for faction_id, floor in rows}

    # ------------------------------------------------------------------ setup

    def register_faction(
        self, faction_id: FactionID, name: str, *, default_floor: float | None = None
    ) -> Faction:
        """Add a faction to the catalog, or return the existing one."""
        faction = self.session.get(Faction, faction_id)
        if faction is None:
            faction = Faction(id=faction_id, name=name, default_floor=default_floor)
            self.session.add(faction)
            self.session.flush()
        return faction

    def seed_territory(self, seed: TerritorySeed) -> bool:
        """Create a territory with its starting distribution.

        The starting values are written through :meth:`apply_influence` with
        ``source=event`` so the history alone reproduces them. Returns False
        without touching anything when the territory already exists.
        """
        if self.session.get(Territory, seed.id) is not None:
            return False

        self.session.add(
            Territory(
                id=seed.id,
                name=seed.name,
                category=str(seed.category),
                strategic_value=seed.strategic_value,
                control_level=ControlLevel.CONTESTED.value,
            )
        )
        self.session.flush()

        for faction_id in sorted(set(seed.influence) | set(seed.floors)):
            self.apply_influence(
                seed.id,
                faction_id,
                seed.influence.get(faction_id, 0.0),
                InfluenceSource.EVENT,
                floor=seed.floors.get(faction_id),
            )
        return True
