"""Protocol-based interfaces for the influence services.

Producers and consumers depend on these shapes only, never on the concrete
service classes.
"""

from frontier_influence.interfaces.ledger import IInfluenceLedger
from frontier_influence.interfaces.listeners import TransitionListener

__all__ = [
    "IInfluenceLedger",
    "TransitionListener",
]
