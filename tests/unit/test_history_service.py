"""Tests for History Log queries."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest

from frontier_influence.domain.enums import InfluenceSource
from frontier_influence.domain.models import HistoryFilter
from frontier_influence.services.history_service import MAX_PAGE_SIZE, HistoryLog
from frontier_influence.services.ledger_service import InfluenceLedger

START = datetime(2026, 5, 1, tzinfo=UTC)


@pytest.fixture
def busy_world(world):
    """Dusty Flats seed plus six timed events, one minute apart."""
    events = [
        ("red_gulch", "settler_alliance", 10, "quest", "char_1"),
        ("red_gulch", "frontera_cartel", 8, "crime", "gang_7"),
        ("red_gulch", "settler_alliance", 5, "donation", "char_1"),
        ("dusty_flats", "settler_alliance", -3, "combat", "char_2"),
        ("red_gulch", "settler_alliance", 200, "quest", "char_1"),
        ("dusty_flats", "frontera_cartel", 4, "crime", "gang_7"),
    ]
    for minute, (territory, faction, delta, source, actor) in enumerate(events, start=1):
        stamp = START + timedelta(minutes=minute)
        with world() as session, session.begin():
            InfluenceLedger(session, clock=lambda stamp=stamp: stamp).apply_influence(
                territory, faction, delta, source, actor
            )
    return world


@pytest.fixture
def log(busy_world):
    with busy_world() as session:
        yield HistoryLog(session)


class TestQuery:
    def test_unfiltered_is_chronological(self, log):
        page = log.query()
        assert page.total == 8
        stamps = [record.recorded_at for record in page.items]
        assert stamps == sorted(stamps)
        assert page.has_more is False

    def test_filter_by_territory_and_faction(self, log):
        page = log.query(
            HistoryFilter(territory_id="red_gulch", faction_id="settler_alliance")
        )
        assert [r.delta for r in page.items] == [10.0, 5.0, 200.0]
        assert [r.resulting_value for r in page.items] == [10.0, 15.0, 100.0]
        assert page.items[-1].applied_delta == 85.0

    def test_filter_by_actor_and_source(self, log):
        assert log.query(HistoryFilter(actor_id="gang_7")).total == 2
        crimes = log.query(HistoryFilter(source=InfluenceSource.CRIME))
        assert {r.actor_id for r in crimes.items} == {"gang_7"}

    def test_time_window(self, log):
        page = log.query(
            HistoryFilter(
                since=START + timedelta(minutes=2),
                until=START + timedelta(minutes=4),
            )
        )
        assert [r.source for r in page.items] == [
            InfluenceSource.CRIME,
            InfluenceSource.DONATION,
            InfluenceSource.COMBAT,
        ]
        assert all(r.recorded_at.tzinfo is not None for r in page.items)

    def test_time_window_with_offset_bounds(self, log):
        plus_two = timezone(timedelta(hours=2))
        page = log.query(
            HistoryFilter(
                since=(START + timedelta(minutes=2)).astimezone(plus_two),
                until=(START + timedelta(minutes=4)).astimezone(plus_two),
            )
        )
        assert [r.source for r in page.items] == [
            InfluenceSource.CRIME,
            InfluenceSource.DONATION,
            InfluenceSource.COMBAT,
        ]

    def test_naive_bounds_are_utc(self, log):
        page = log.query(
            HistoryFilter(
                since=datetime(2026, 5, 1, 0, 5),
                until=datetime(2026, 5, 1, 0, 6),
            )
        )
        assert [r.delta for r in page.items] == [200.0, 4.0]

    def test_pagination(self, log):
        first = log.query(offset=0, limit=3)
        second = log.query(offset=3, limit=3)
        last = log.query(offset=6, limit=3)

        assert first.has_more and second.has_more
        assert not last.has_more
        ids = [r.id for page in (first, second, last) for r in page.items]
        assert len(ids) == len(set(ids)) == 8

    def test_limit_is_capped(self, log):
        page = log.query(limit=10_000)
        assert page.limit == MAX_PAGE_SIZE


class TestRecentAndContributions:
    def test_recent_returns_latest_oldest_first(self, log):
        records = log.recent("red_gulch", limit=2)
        assert [r.delta for r in records] == [5.0, 200.0]

    def test_contributions_sum_requested_deltas(self, log):
        contributions = log.contributions("char_1")
        assert len(contributions) == 1
        only = contributions[0]
        assert only.territory_id == "red_gulch"
        assert only.faction_id == "settler_alliance"
        assert only.total_delta == 215.0
        assert only.event_count == 3

    def test_contributions_scoped_to_territory(self, log):
        assert len(log.contributions("gang_7")) == 2
        scoped = log.contributions("gang_7", territory_id="dusty_flats")
        assert [c.total_delta for c in scoped] == [4.0]

    def test_unknown_actor_has_no_contributions(self, log):
        assert log.contributions("nobody") == []


class TestReplay:
    def test_replay_matches_stored_values(self, log):
        assert log.replay("red_gulch", "settler_alliance") == 100.0
        assert log.replay("dusty_flats", "settler_alliance") == 37.0
        assert log.replay("dusty_flats", "frontera_cartel") == 24.0

    def test_replay_of_untouched_pair_is_zero(self, log):
        assert log.replay("red_gulch", "nahi_coalition") == 0.0
