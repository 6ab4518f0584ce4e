"""Tests for the Query Facade."""

from __future__ import annotations

import pytest
from sqlalchemy import update

from frontier_influence.domain.enums import ControlLevel
from frontier_influence.domain.models import NO_BENEFITS, HistoryFilter
from frontier_influence.domain.rules_config import DEFAULT_RULES
from frontier_influence.errors import UnknownFaction, UnknownTerritory
from frontier_influence.models import Territory
from frontier_influence.services.ledger_service import InfluenceLedger
from frontier_influence.services.query_service import QueryFacade


class FakeMonotonic:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def _apply(session_factory, territory, faction, delta, source="quest", actor=None):
    with session_factory() as session, session.begin():
        return InfluenceLedger(session).apply_influence(territory, faction, delta, source, actor)


@pytest.fixture
def monotonic():
    return FakeMonotonic()


@pytest.fixture
def facade(world, monotonic):
    return QueryFacade(world, DEFAULT_RULES, overview_ttl_seconds=30, monotonic=monotonic)


class TestTerritories:
    def test_get_territory(self, facade):
        summary = facade.get_territory("dusty_flats")

        assert summary.name == "Dusty Flats"
        assert summary.influence_by_faction == {
            "frontera_cartel": 20.0,
            "settler_alliance": 40.0,
        }
        assert summary.control.level is ControlLevel.DISPUTED
        assert summary.control.controlling_faction == "settler_alliance"
        assert summary.control.control_changed_at is not None
        assert summary.active_benefits == DEFAULT_RULES.benefits.disputed

    def test_empty_territory_is_contested(self, facade):
        summary = facade.get_territory("red_gulch")
        assert summary.influence_by_faction == {}
        assert summary.control.level is ControlLevel.CONTESTED
        assert summary.active_benefits == NO_BENEFITS

    def test_unknown_territory(self, facade):
        with pytest.raises(UnknownTerritory):
            facade.get_territory("atlantis")

    def test_reads_recompute_from_values(self, world, facade):
        with world() as session, session.begin():
            session.execute(
                update(Territory)
                .where(Territory.id == "dusty_flats")
                .values(control_level="dominated", controlling_faction_id="nahi_coalition")
            )

        summary = facade.get_territory("dusty_flats")

        assert summary.control.level is ControlLevel.DISPUTED
        assert summary.control.controlling_faction == "settler_alliance"
        assert facade.get_territory("dusty_flats").control == summary.control
        with world() as session:
            stored = session.get(Territory, "dusty_flats").control_changed_at
        assert summary.control.control_changed_at == stored

    def test_listings(self, facade):
        assert [s.id for s in facade.list_territories()] == ["dusty_flats", "red_gulch"]
        assert [s.id for s in facade.contested_territories()] == ["red_gulch"]
        assert [s.id for s in facade.territories_by_level(ControlLevel.DISPUTED)] == [
            "dusty_flats"
        ]
        assert facade.territories_by_level(ControlLevel.DOMINATED) == []

    def test_territories_controlled_by(self, facade):
        assert [s.id for s in facade.territories_controlled_by("settler_alliance")] == [
            "dusty_flats"
        ]
        assert facade.territories_controlled_by("nahi_coalition") == []
        with pytest.raises(UnknownFaction):
            facade.territories_controlled_by("pinkertons")

    def test_list_factions(self, facade):
        assert len(facade.list_factions()) == 6


class TestFactionOverview:
    def test_counts(self, facade):
        overview = facade.get_faction_overview("settler_alliance")

        assert overview.disputed_count == 1
        assert overview.controlled_count == 0
        assert overview.dominated_count == 0
        assert [t.id for t in overview.territories] == ["dusty_flats"]
        assert overview.total_influence == 40.0

    def test_unknown_faction(self, facade):
        with pytest.raises(UnknownFaction):
            facade.get_faction_overview("pinkertons")

    def test_cached_until_ttl_expires(self, world, facade, monotonic):
        first = facade.get_faction_overview("settler_alliance")
        _apply(world, "dusty_flats", "settler_alliance", 35)

        monotonic.now += 29
        cached = facade.get_faction_overview("settler_alliance")
        assert cached == first
        assert cached.dominated_count == 0

        monotonic.now += 2
        fresh = facade.get_faction_overview("settler_alliance")
        assert fresh.dominated_count == 1
        assert fresh.dominated_territories == ["dusty_flats"]

    def test_callers_cannot_corrupt_cache(self, facade):
        first = facade.get_faction_overview("settler_alliance")
        first.disputed_count = 99
        first.territories.clear()

        again = facade.get_faction_overview("settler_alliance")

        assert again.disputed_count == 1
        assert [t.id for t in again.territories] == ["dusty_flats"]

    def test_invalidate(self, world, facade):
        facade.get_faction_overview("settler_alliance")
        _apply(world, "red_gulch", "settler_alliance", 55)

        facade.invalidate("settler_alliance")

        overview = facade.get_faction_overview("settler_alliance")
        assert overview.controlled_count == 1
        assert overview.disputed_count == 1

    def test_zero_ttl_disables_cache(self, world, monotonic):
        facade = QueryFacade(world, overview_ttl_seconds=0, monotonic=monotonic)
        first = facade.get_faction_overview("settler_alliance")
        assert facade.get_faction_overview("settler_alliance") is not first


class TestBenefits:
    def test_dominating_faction_gets_high_tier(self, world, facade):
        _apply(world, "dusty_flats", "settler_alliance", 35)

        benefits = facade.get_alignment_benefits("settler_alliance", "dusty_flats")

        assert benefits.shop_discount == pytest.approx(0.25)
        assert facade.get_alignment_benefits("frontera_cartel", "dusty_flats") == NO_BENEFITS

    def test_contested_territory_grants_nothing(self, facade):
        assert facade.get_alignment_benefits("settler_alliance", "red_gulch").is_empty

    def test_unknown_ids(self, facade):
        with pytest.raises(UnknownFaction):
            facade.get_alignment_benefits("pinkertons", "dusty_flats")
        with pytest.raises(UnknownTerritory):
            facade.get_alignment_benefits("settler_alliance", "atlantis")


class TestHistoryPassThrough:
    def test_history_contributions_and_recent(self, world, facade):
        _apply(world, "red_gulch", "nahi_coalition", 12, "quest", "char_9")
        _apply(world, "red_gulch", "nahi_coalition", 3, "donation", "char_9")

        page = facade.get_history(HistoryFilter(actor_id="char_9"))
        assert page.total == 2

        recent = facade.recent_history("red_gulch")
        assert [r.delta for r in recent] == [12.0, 3.0]

        contributions = facade.get_contributions("char_9")
        assert contributions[0].total_delta == 15.0

    def test_recent_history_unknown_territory(self, facade):
        with pytest.raises(UnknownTerritory):
            facade.recent_history("atlantis")
