"""Service Factory for the territory influence core.

This module provides factory functions for creating service instances with
proper dependency wiring from the application settings. Use these functions
in production code; tests construct the services directly with an in-memory
session factory and explicit rules.

Example:
    # Production usage
    from frontier_influence.factory import create_all_services
    services = create_all_services()
    services["influence"].apply_influence("red_gulch", "settler_alliance", 5, "quest")

    # Testing usage
    from frontier_influence.services.influence_service import InfluenceService

    service = InfluenceService(session_factory, retry_attempts=1)
"""

from collections.abc import Iterable

from sqlalchemy.orm import Session, sessionmaker

from frontier_influence.config import Settings, get_settings
from frontier_influence.database import get_session_factory
from frontier_influence.domain.rules_config import RulesConfig, rules_from_settings
from frontier_influence.interfaces.listeners import TransitionListener
from frontier_influence.services.influence_service import InfluenceService
from frontier_influence.services.query_service import QueryFacade


def create_rules(settings: Settings | None = None) -> RulesConfig:
    """Build the rule set from settings (defaults to the cached application settings)."""
    return rules_from_settings(settings or get_settings())


def create_influence_service(
    session_factory: sessionmaker[Session] | None = None,
    *,
    settings: Settings | None = None,
    rules: RulesConfig | None = None,
    listeners: Iterable[TransitionListener] = (),
) -> InfluenceService:
    """Create an InfluenceService with all dependencies.

    Args:
        session_factory: Session source; defaults to the global factory
        settings: Retry settings source
        rules: Rule set; built from ``settings`` when omitted
        listeners: Control transition listeners

    Returns:
        Fully initialized InfluenceService
    """
    settings = settings or get_settings()
    return InfluenceService(
        session_factory or get_session_factory(),
        rules or create_rules(settings),
        listeners=listeners,
        retry_attempts=settings.transient_retry_attempts,
        retry_base_delay=settings.transient_retry_base_delay_seconds,
    )


def create_query_facade(
    session_factory: sessionmaker[Session] | None = None,
    *,
    settings: Settings | None = None,
    rules: RulesConfig | None = None,
) -> QueryFacade:
    """Create a QueryFacade with all dependencies.

    Returns:
        Fully initialized QueryFacade with the configured overview TTL
    """
    settings = settings or get_settings()
    return QueryFacade(
        session_factory or get_session_factory(),
        rules or create_rules(settings),
        overview_ttl_seconds=settings.overview_cache_ttl_seconds,
    )


def create_all_services(
    session_factory: sessionmaker[Session] | None = None,
    *,
    settings: Settings | None = None,
) -> dict:
    """Create all services with proper dependency wiring.

    The query facade's overview cache is invalidated whenever a committed
    mutation changes control of a territory.

    Returns:
        Dictionary containing all initialized services:
        - rules: RulesConfig
        - influence: InfluenceService
        - queries: QueryFacade
    """
    settings = settings or get_settings()
    session_factory = session_factory or get_session_factory()
    rules = create_rules(settings)
    queries = create_query_facade(session_factory, settings=settings, rules=rules)
    influence = create_influence_service(
        session_factory,
        settings=settings,
        rules=rules,
        listeners=[lambda transition: queries.invalidate()],
    )
    return {"rules": rules, "influence": influence, "queries": queries}
