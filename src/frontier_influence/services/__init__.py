"""Service layer for the territory influence core.

Services depend on Protocol interfaces where a seam is useful
(IInfluenceLedger, TransitionListener) and are wired by factory.py:

Architecture:
    - InfluenceLedger: Atomic clamped mutation, history append, control cache
    - HistoryLog: Audit queries, actor contributions, replay
    - run_daily_decay: Idempotent per-day decay toward equilibrium
    - QueryFacade: Territory summaries, faction overviews, benefits
    - InfluenceService: Producer entry point, transactions, retries, listeners

Production Usage:
    from frontier_influence.factory import create_influence_service
    influence = create_influence_service(session_factory)
    influence.apply_influence("red_gulch", "settler_alliance", 5, "quest", "char_42")

Testing Usage:
    from frontier_influence.services.decay_service import decay_territory

    class FakeLedger:
        def snapshot(self, territory_id):
            return {"settler_alliance": 75.0}
        ...

    decay_territory(FakeLedger(), "red_gulch", target=100 / 6, rules=DEFAULT_RULES)
"""

from frontier_influence.services.decay_service import run_daily_decay
from frontier_influence.services.history_service import HistoryLog
from frontier_influence.services.influence_service import InfluenceService
from frontier_influence.services.ledger_service import InfluenceLedger
from frontier_influence.services.query_service import QueryFacade

__all__ = [
    "HistoryLog",
    "InfluenceLedger",
    "InfluenceService",
    "QueryFacade",
    "run_daily_decay",
]
