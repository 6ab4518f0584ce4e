"""SQLAlchemy models for the territory influence core.

This module exports all database models and the declarative base.
"""

# Base classes
from .base import (
    Base,
    TimestampCreatedMixin,
    TimestampMixin,
    UTCDateTime,
    as_utc,
    to_utc,
    utc_now,
)

# History models
from .event import InfluenceEvent

# Faction catalog
from .faction import Faction

# Territory and influence models
from .territory import FactionInfluence, Territory

__all__ = [
    "Base",
    "Faction",
    "FactionInfluence",
    "InfluenceEvent",
    "Territory",
    "TimestampCreatedMixin",
    "TimestampMixin",
    "UTCDateTime",
    "as_utc",
    "to_utc",
    "utc_now",
]
