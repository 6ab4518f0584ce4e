"""Listener protocol for control transitions."""

from typing import Protocol

from frontier_influence.domain.models import ControlTransition


class TransitionListener(Protocol):
    """Callable notified after a mutation that changed a territory's control.

    Listeners run after the mutation has been committed. They are invoked for
    controller changes and for level-only changes alike; inspect
    ``transition.controller_changed`` and ``transition.level_changed`` to tell
    them apart.
    """

    def __call__(self, transition: ControlTransition) -> None: ...
