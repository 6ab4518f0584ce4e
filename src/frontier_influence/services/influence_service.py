"""Producer-facing entry point for influence mutations.

``InfluenceService`` owns the transaction boundary around the ledger: one
session and one transaction per call, bounded retries with exponential backoff
for transient store failures, and dispatch of control transitions to
listeners once the mutation has committed. Quests, crimes, combat and the
other producers depend only on :meth:`InfluenceService.apply_influence` (or
the best-effort :meth:`InfluenceService.record_influence`).
"""

import logging
import time
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import TypeVar

from sqlalchemy.orm import Session, sessionmaker

from frontier_influence.domain.benefits import donation_influence
from frontier_influence.domain.enums import PRODUCER_SOURCES, InfluenceSource
from frontier_influence.domain.models import (
    ActorID,
    ControlTransition,
    FactionID,
    InfluenceResult,
    TerritoryID,
    TerritorySeed,
)
from frontier_influence.domain.rules_config import DEFAULT_RULES, RulesConfig
from frontier_influence.errors import (
    InfluenceError,
    InvalidSource,
    TransientStoreFailure,
    transient_store_errors,
)
from frontier_influence.interfaces.listeners import TransitionListener
from frontier_influence.models import utc_now
from frontier_influence.services.ledger_service import InfluenceLedger, coerce_source

logger = logging.getLogger(__name__)

T = TypeVar("T")


class InfluenceService:
    """Transactional wrapper around :class:`InfluenceLedger`."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        rules: RulesConfig = DEFAULT_RULES,
        *,
        listeners: Iterable[TransitionListener] = (),
        retry_attempts: int = 3,
        retry_base_delay: float = 0.05,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._session_factory = session_factory
        self.rules = rules
        self._listeners: list[TransitionListener] = list(listeners)
        self.retry_attempts = max(1, retry_attempts)
        self.retry_base_delay = retry_base_delay
        self._sleep = sleep
        self._clock = clock

    def add_listener(self, listener: TransitionListener) -> None:
        self._listeners.append(listener)

    def publish(self, transition: ControlTransition) -> None:
        """Deliver a committed transition to every listener.

        Also the sink for transitions produced outside this service, such as the
        daily decay run. A failing listener is logged and does not stop the rest.
        """
        for listener in self._listeners:
            try:
                listener(transition)
            except Exception:
                logger.exception(
                    "transition listener %r failed for territory %s",
                    listener,
                    transition.territory_id,
                )

    # --------------------------------------------------------------- mutations

    def apply_influence(
        self,
        territory_id: TerritoryID,
        faction_id: FactionID,
        delta: float,
        source: InfluenceSource | str,
        actor_id: ActorID | None = None,
    ) -> InfluenceResult:
        """Apply one producer event and commit it.

        Raises:
            InvalidSource: unknown source, or ``decay`` which only the scheduler
                may write
            UnknownTerritory: ``territory_id`` does not resolve
            UnknownFaction: ``faction_id`` does not resolve
            TransientStoreFailure: the store kept failing after every retry
        """
        source = coerce_source(source)
        if source not in PRODUCER_SOURCES:
            raise InvalidSource(source)

        return self._in_transaction(
            lambda ledger: ledger.apply_influence(
                territory_id, faction_id, delta, source, actor_id
            )
        )

    def contribute_influence(
        self,
        actor_id: ActorID,
        territory_id: TerritoryID,
        faction_id: FactionID,
        amount: float,
        source: InfluenceSource | str = InfluenceSource.QUEST,
    ) -> InfluenceResult:
        """Record an actor's contribution on behalf of a faction."""
        return self.apply_influence(territory_id, faction_id, amount, source, actor_id)

    def donate_for_influence(
        self,
        actor_id: ActorID,
        territory_id: TerritoryID,
        faction_id: FactionID,
        gold: float,
    ) -> InfluenceResult:
        """Convert a gold donation into influence.

        Raises:
            ValueError: ``gold`` is not positive
        """
        if gold <= 0:
            raise ValueError("Donation amount must be positive")
        amount = donation_influence(gold, rules=self.rules)
        return self.apply_influence(
            territory_id, faction_id, amount, InfluenceSource.DONATION, actor_id
        )

    def record_influence(
        self,
        territory_id: TerritoryID,
        faction_id: FactionID,
        delta: float,
        source: InfluenceSource | str,
        actor_id: ActorID | None = None,
    ) -> InfluenceResult | None:
        """Best-effort variant for gameplay paths that must not fail.

        Returns None, after logging, when the mutation could not be applied.
        """
        try:
            return self.apply_influence(territory_id, faction_id, delta, source, actor_id)
        except (InfluenceError, ValueError) as exc:
            logger.warning(
                "dropped influence %+.2f for %s in %s (%s): %s",
                float(delta),
                faction_id,
                territory_id,
                source,
                exc,
            )
            return None

    # ------------------------------------------------------------------- setup

    def register_faction(
        self, faction_id: FactionID, name: str, *, default_floor: float | None = None
    ) -> None:
        self._in_transaction(
            lambda ledger: ledger.register_faction(
                faction_id, name, default_floor=default_floor
            )
        )

    def seed_world(self, seeds: Iterable[TerritorySeed]) -> list[TerritoryID]:
        """Create the given territories; returns the ids that were new."""
        created: list[TerritoryID] = []
        for seed in seeds:
            if self._in_transaction(lambda ledger, seed=seed: ledger.seed_territory(seed)):
                created.append(seed.id)
            else:
                logger.info("territory %s already exists; seed skipped", seed.id)
        return created

    # ----------------------------------------------------------------- helpers

    def _in_transaction(self, operation: Callable[[InfluenceLedger], T]) -> T:
        for attempt in range(1, self.retry_attempts + 1):
            try:
                with transient_store_errors(), self._session_factory() as session:
                    with session.begin():
                        ledger = InfluenceLedger(session, self.rules, clock=self._clock)
                        result = operation(ledger)
            except TransientStoreFailure:
                if attempt == self.retry_attempts:
                    raise
                delay = self.retry_base_delay * 2 ** (attempt - 1)
                logger.warning(
                    "transient store failure (attempt %d/%d); retrying in %.3fs",
                    attempt,
                    self.retry_attempts,
                    delay,
                )
                self._sleep(delay)
                continue

            self._dispatch(ledger.transitions)
            return result

        raise AssertionError("unreachable")  # pragma: no cover

    def _dispatch(self, transitions: Iterable[ControlTransition]) -> None:
        for transition in transitions:
            self.publish(transition)
