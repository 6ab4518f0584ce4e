"""Seeding the bundled frontier world."""

from pathlib import Path

import pytest

from frontier_influence.domain.enums import ControlLevel
from frontier_influence.seeding import load_world
from frontier_influence.services.influence_service import InfluenceService
from frontier_influence.services.query_service import QueryFacade

WORLD_FILE = Path(__file__).parent.parent.parent / "worlds" / "frontier.json"


@pytest.fixture
def seeded(session_factory):
    world = load_world(WORLD_FILE)
    service = InfluenceService(session_factory)
    for faction in world.factions:
        service.register_faction(faction.id, faction.name, default_floor=faction.default_floor)
    created = service.seed_world(world.territory_seeds())
    return session_factory, service, created


def test_world_file_seeds_every_territory(seeded):
    _, service, created = seeded

    assert len(created) == 9
    assert service.seed_world(load_world(WORLD_FILE).territory_seeds()) == []


def test_seeded_control_levels(seeded):
    session_factory, _, _ = seeded
    queries = QueryFacade(session_factory)

    levels = {s.id: s.control.level for s in queries.list_territories()}

    assert levels["fort_ashford"] is ControlLevel.DOMINATED
    assert levels["kaiowa_mesa"] is ControlLevel.DOMINATED
    assert levels["red_gulch"] is ControlLevel.CONTROLLED
    assert levels["devils_canyon"] is ControlLevel.DISPUTED
    # tie at the top
    assert levels["whiskey_bend"] is ControlLevel.CONTESTED
    assert levels["longhorn_ranges"] is ControlLevel.CONTESTED


def test_seeded_overview(seeded):
    session_factory, _, _ = seeded
    overview = QueryFacade(session_factory).get_faction_overview("settler_alliance")

    assert overview.dominated_territories == ["fort_ashford"]
    assert overview.controlled_count == 1
    assert overview.total_influence == pytest.approx(55 + 72 + 30 + 25)
