"""Daily influence decay.

``run_daily_decay`` is a plain function over a day key so any scheduler can
drive it (see :class:`frontier_influence.api.runtime.DecayManager` for the
built-in one). Each territory is decayed in its own transaction that first
claims the day with a compare-and-set on ``last_decay_date``; a second run on
the same day finds nothing to claim, and a failed territory rolls back its
claim so the next run picks it up again.
"""

import logging
import threading
from collections.abc import Callable
from datetime import date

from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session, sessionmaker

from frontier_influence.domain.decay import decay_delta, equilibrium
from frontier_influence.domain.enums import InfluenceSource
from frontier_influence.domain.models import (
    ControlTransition,
    DecayReport,
    TerritoryID,
)
from frontier_influence.domain.rules_config import DEFAULT_RULES, RulesConfig
from frontier_influence.interfaces.ledger import IInfluenceLedger
from frontier_influence.models import Faction, Territory
from frontier_influence.services.ledger_service import InfluenceLedger

logger = logging.getLogger(__name__)

LedgerFactory = Callable[[Session, RulesConfig], IInfluenceLedger]


def claim_decay_day(session: Session, territory_id: TerritoryID, day: date) -> bool:
    """Mark ``territory_id`` as decayed for ``day`` unless it already is."""
    stmt = (
        update(Territory)
        .where(
            Territory.id == territory_id,
            or_(Territory.last_decay_date.is_(None), Territory.last_decay_date < day),
        )
        .values(last_decay_date=day)
        .execution_options(synchronize_session=False)
    )
    return session.execute(stmt).rowcount == 1


def decay_territory(
    ledger: IInfluenceLedger,
    territory_id: TerritoryID,
    target: float,
    rules: RulesConfig,
) -> int:
    """Apply one decay step to every present faction; returns adjustments made."""
    floors = ledger.floors(territory_id)
    adjustments = 0
    for faction_id, value in ledger.snapshot(territory_id).items():
        if value == 0:
            continue
        delta = decay_delta(value, floors.get(faction_id, 0.0), target, rules=rules)
        if delta == 0:
            continue
        ledger.apply_influence(territory_id, faction_id, delta, InfluenceSource.DECAY)
        adjustments += 1
    return adjustments


def run_daily_decay(
    session_factory: sessionmaker[Session],
    day: date,
    *,
    rules: RulesConfig = DEFAULT_RULES,
    ledger_factory: LedgerFactory = InfluenceLedger,
    cancel_event: threading.Event | None = None,
    on_transition: Callable[[ControlTransition], None] | None = None,
) -> DecayReport:
    """Decay every territory once for ``day``.

    Args:
        session_factory: Source of sessions; one session per territory
        day: Idempotency key; territories already decayed for this day or a
            later one are skipped
        rules: Decay rate, step bound and influence bounds
        ledger_factory: Builds the ledger used for the writes
        cancel_event: When set, the run stops before the next territory
        on_transition: Called for every control transition after its
            territory's transaction commits

    Returns:
        DecayReport with per-territory totals
    """
    with session_factory() as session:
        faction_count = session.execute(select(func.count(Faction.id))).scalar_one()
        territory_ids = [
            TerritoryID(tid)
            for tid in session.execute(select(Territory.id).order_by(Territory.id)).scalars()
        ]

    if faction_count == 0:
        logger.info("decay for %s skipped: no factions defined", day)
        return DecayReport(day=day, territories_skipped=len(territory_ids))

    target = equilibrium(faction_count, rules=rules)
    processed = skipped = adjustments = 0
    failed: list[TerritoryID] = []
    cancelled = False

    for territory_id in territory_ids:
        if cancel_event is not None and cancel_event.is_set():
            cancelled = True
            logger.info("decay for %s cancelled before territory %s", day, territory_id)
            break

        try:
            with session_factory() as session, session.begin():
                if not claim_decay_day(session, territory_id, day):
                    skipped += 1
                    continue
                ledger = ledger_factory(session, rules)
                adjustments += decay_territory(ledger, territory_id, target, rules)
                transitions = list(ledger.transitions)
        except Exception:
            # Isolated per territory: the claim rolled back with the writes and
            # the next scheduled run retries it.
            logger.exception("decay failed for territory %s on %s", territory_id, day)
            failed.append(territory_id)
            continue

        processed += 1
        if on_transition is not None:
            for transition in transitions:
                try:
                    on_transition(transition)
                except Exception:
                    logger.exception(
                        "transition callback failed for territory %s on %s", territory_id, day
                    )

    report = DecayReport(
        day=day,
        territories_processed=processed,
        territories_skipped=skipped,
        territories_failed=len(failed),
        adjustments=adjustments,
        failed_territories=tuple(failed),
        cancelled=cancelled,
    )
    logger.info(
        "decay for %s: %d processed, %d skipped, %d failed, %d adjustments",
        day,
        processed,
        skipped,
        len(failed),
        adjustments,
    )
    return report
