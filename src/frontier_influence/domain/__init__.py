"""Pure influence rules.

This package holds everything that can be computed without a database:

* Dataclasses describing territories, control states and history records
  (see :mod:`models`).
* Enumerations for influence sources, control levels and territory kinds.
* Rule configuration objects (see :mod:`rules_config`).
* Control resolution, benefit lookup and decay arithmetic.
"""

from . import benefits, control, decay, enums, models, rules_config

__all__ = [
    "benefits",
    "control",
    "decay",
    "enums",
    "models",
    "rules_config",
]
