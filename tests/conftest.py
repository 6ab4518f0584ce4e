"""Pytest configuration and shared fixtures.

This adds the `src/` directory to `sys.path` so tests can import the
`frontier_influence` package without requiring an editable install in CI, and
provides in-memory database fixtures seeded with a small frontier world.
"""

import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

SRC_PATH = Path(__file__).resolve().parents[1] / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from frontier_influence.database import create_session_factory  # noqa: E402
from frontier_influence.domain.models import TerritorySeed  # noqa: E402
from frontier_influence.domain.rules_config import DEFAULT_RULES  # noqa: E402
from frontier_influence.models import Base  # noqa: E402
from frontier_influence.services.ledger_service import InfluenceLedger  # noqa: E402

FACTIONS = {
    "settler_alliance": "Settler Alliance",
    "nahi_coalition": "Nahi Coalition",
    "frontera_cartel": "Frontera Cartel",
    "independent_outlaws": "Independent Outlaws",
    "railroad_company": "Railroad Company",
    "chinese_tong": "Chinese Tong",
}


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database shared across threads of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def world(session_factory):
    """Six factions and two territories: Red Gulch (empty) and Dusty Flats."""
    with session_factory() as session, session.begin():
        ledger = InfluenceLedger(session, DEFAULT_RULES)
        for faction_id, name in FACTIONS.items():
            ledger.register_faction(faction_id, name)
        ledger.seed_territory(TerritorySeed(id="red_gulch", name="Red Gulch"))
        ledger.seed_territory(
            TerritorySeed(
                id="dusty_flats",
                name="Dusty Flats",
                influence={"settler_alliance": 40.0, "frontera_cartel": 20.0},
            )
        )
    return session_factory
