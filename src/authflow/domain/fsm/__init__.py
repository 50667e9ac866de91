"""FSM genérica: modelo declarativo e erros.

Exporta:
- State, Event, Transition, HistoryEntry, TransitionTable
- FSMError, FSMConfigError, AmbiguousTransitionError
"""

from authflow.domain.fsm.errors import (
    AmbiguousTransitionError,
    FSMConfigError,
    FSMError,
)
from authflow.domain.fsm.model import (
    Action,
    Context,
    Effect,
    Event,
    Guard,
    HistoryEntry,
    State,
    Transition,
    TransitionTable,
)

__all__ = [
    "Action",
    "AmbiguousTransitionError",
    "Context",
    "Effect",
    "Event",
    "FSMConfigError",
    "FSMError",
    "Guard",
    "HistoryEntry",
    "State",
    "Transition",
    "TransitionTable",
]
