"""Tests for API runtime helpers (decay manager)."""

from __future__ import annotations

import asyncio
from datetime import UTC, date, datetime

import pytest

from frontier_influence.api.runtime import ApiState, DecayManager
from frontier_influence.config import Settings
from frontier_influence.domain.enums import InfluenceSource
from frontier_influence.domain.models import HistoryFilter, TerritorySeed
from frontier_influence.models import FactionInfluence
from frontier_influence.services.history_service import HistoryLog


def _fixed(moment: datetime):
    return lambda: moment


def test_next_run_follows_cron():
    manager = DecayManager(
        lambda: None, cron="0 3 * * *", clock=_fixed(datetime(2026, 10, 18, 2, 0, tzinfo=UTC))
    )
    assert manager.next_run_at() == datetime(2026, 10, 18, 3, 0, tzinfo=UTC)
    assert manager.next_run_at(datetime(2026, 10, 18, 3, 0, tzinfo=UTC)) == datetime(
        2026, 10, 19, 3, 0, tzinfo=UTC
    )


def test_invalid_cron_rejected():
    with pytest.raises(ValueError, match="Invalid decay schedule"):
        DecayManager(lambda: None, cron="every day at noon")


@pytest.mark.asyncio
async def test_run_now_records_report(world):
    manager = DecayManager(world, clock=_fixed(datetime(2026, 10, 18, 12, 0, tzinfo=UTC)))

    report = await manager.run_now()

    assert report.day == date(2026, 10, 18)
    assert report.territories_processed == 2
    assert manager.last_report is report
    assert manager.last_run_at == datetime(2026, 10, 18, 12, 0, tzinfo=UTC)


@pytest.mark.asyncio
async def test_scheduled_loop_runs_once_per_day(world):
    manager = DecayManager(
        world, clock=_fixed(datetime(2026, 10, 18, 2, 59, 59, 950000, tzinfo=UTC))
    )

    manager.start()
    assert manager.is_running
    await asyncio.sleep(0.35)
    await manager.stop()

    assert not manager.is_running
    assert manager.last_report is not None
    assert manager.last_report.day == date(2026, 10, 18)
    with world() as session:
        page = HistoryLog(session).query(HistoryFilter(source=InfluenceSource.DECAY))
        value = session.get(FactionInfluence, ("dusty_flats", "settler_alliance")).value
    assert page.total == 2
    assert value < 40.0


@pytest.mark.asyncio
async def test_stop_without_start_is_noop(world):
    manager = DecayManager(world)
    await manager.stop()
    assert not manager.is_running


@pytest.mark.asyncio
async def test_decay_transitions_reach_service_listeners(tmp_path):
    state = ApiState(
        settings=Settings(
            DATABASE_URL=f"sqlite:///{tmp_path / 'decay.db'}",
            decay_enabled=False,
            overview_cache_ttl_seconds=3600,
        )
    )
    try:
        for index in range(6):
            state.influence.register_faction(f"f{index}", f"Faction {index}", default_floor=0)
        state.influence.seed_world(
            [TerritorySeed(id="edge_town", name="Edge Town", influence={"f0": 30.1})]
        )
        assert state.queries.get_faction_overview("f0").disputed_count == 1
        seen = []
        state.influence.add_listener(seen.append)

        await state.decay.run_now(date(2030, 1, 1))

        assert len(seen) == 1
        assert seen[0].territory_id == "edge_town"
        assert seen[0].previous.controlling_faction == "f0"
        assert seen[0].current.controlling_faction is None
        assert seen[0].source is InfluenceSource.DECAY
        assert state.queries.get_faction_overview("f0").disputed_count == 0
    finally:
        await state.shutdown()
