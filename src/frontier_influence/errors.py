"""Exception taxonomy for the influence core.

``UnknownTerritory``, ``UnknownFaction`` and ``InvalidSource`` are caller
errors: they are raised immediately and never retried. ``TransientStoreFailure``
wraps storage errors that may succeed on a later attempt.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import InterfaceError, OperationalError


class InfluenceError(Exception):
    """Base class for every error raised by the influence core."""


class UnknownTerritory(InfluenceError):
    def __init__(self, territory_id: str) -> None:
        super().__init__(f"Territory '{territory_id}' not found")
        self.territory_id = territory_id


class UnknownFaction(InfluenceError):
    def __init__(self, faction_id: str) -> None:
        super().__init__(f"Faction '{faction_id}' not found")
        self.faction_id = faction_id


class InvalidSource(InfluenceError):
    def __init__(self, source: object) -> None:
        super().__init__(f"Invalid influence source: {source!r}")
        self.source = source


class TransientStoreFailure(InfluenceError):
    """The persistent store failed in a way that may succeed on retry."""


@contextmanager
def transient_store_errors() -> Iterator[None]:
    """Re-raise connection-level SQLAlchemy errors as ``TransientStoreFailure``."""
    try:
        yield
    except (OperationalError, InterfaceError) as exc:
        raise TransientStoreFailure(str(exc.orig or exc)) from exc
