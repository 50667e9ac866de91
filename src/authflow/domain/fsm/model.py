"""Modelo declarativo da FSM: estados, eventos, transições e tabela.

Dados puros, sem comportamento de execução. O engine
(`authflow.application.fsm_engine`) interpreta a tabela.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from authflow.domain.fsm.errors import FSMConfigError

Context = dict[str, Any]
Guard = Callable[[Mapping[str, Any], "Event"], bool]
Action = Callable[[Mapping[str, Any], "Event"], Mapping[str, Any] | None]
Effect = Callable[[Mapping[str, Any], "Event"], Awaitable[None]]


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True, slots=True)
class State:
    """Estado declarado na tabela. Imutável após a construção."""

    name: str
    is_final: bool = False
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Enums (StrEnum) viram str puro para indexação estável
        object.__setattr__(self, "name", str(self.name))


@dataclass(frozen=True)
class Event:
    """Evento disparador.

    Valor, não entidade: dois eventos com mesmo `type` e `payload` são
    equivalentes para o engine (timestamp e metadata ficam fora da igualdade).
    """

    type: str
    payload: Mapping[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=_utcnow, compare=False)
    metadata: Mapping[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", str(self.type))

    def get(self, key: str, default: Any = None) -> Any:
        """Atalho para `payload.get`."""
        return self.payload.get(key, default)


@dataclass(frozen=True, slots=True)
class Transition:
    """Entrada da tabela: source --on[guard]/action--> target, effect após commit."""

    source: str
    target: str
    on: str
    guard: Guard | None = None
    action: Action | None = None
    effect: Effect | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "source", str(self.source))
        object.__setattr__(self, "target", str(self.target))
        object.__setattr__(self, "on", str(self.on))

    def allows(self, context: Mapping[str, Any], event: Event) -> bool:
        """Avalia o guard (ausente = sempre permitido)."""
        if self.guard is None:
            return True
        return bool(self.guard(context, event))


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    """Registro append-only de uma transição bem-sucedida."""

    source: str
    target: str
    event: Event
    timestamp: datetime


class TransitionTable:
    """Conjunto fixo de estados e transições.

    Valida na construção que toda transição referencia estados declarados.
    Mantém um índice (source, on) -> [transições] preservando a ordem da tabela,
    pois a resolução é "primeira entrada da tabela vence".
    """

    def __init__(self, states: Iterable[State], transitions: Iterable[Transition]) -> None:
        self._states: dict[str, State] = {}
        for state in states:
            if state.name in self._states:
                raise FSMConfigError(f"Duplicate state {state.name!r}")
            self._states[state.name] = state

        self._transitions: tuple[Transition, ...] = tuple(transitions)
        self._index: dict[tuple[str, str], list[Transition]] = {}

        for transition in self._transitions:
            if not transition.on:
                raise FSMConfigError(
                    f"Transition {transition.source!r} -> {transition.target!r} has no event"
                )
            for endpoint in (transition.source, transition.target):
                if endpoint not in self._states:
                    raise FSMConfigError(
                        f"Transition {transition.source!r} -> {transition.target!r} "
                        f"on {transition.on!r} references unknown state {endpoint!r}"
                    )
            self._index.setdefault((transition.source, transition.on), []).append(transition)

    @property
    def states(self) -> Mapping[str, State]:
        return dict(self._states)

    @property
    def transitions(self) -> tuple[Transition, ...]:
        return self._transitions

    def has_state(self, name: str) -> bool:
        return str(name) in self._states

    def state(self, name: str) -> State:
        """Retorna o estado declarado ou levanta FSMConfigError."""
        try:
            return self._states[str(name)]
        except KeyError:
            raise FSMConfigError(f"State {name!r} not declared") from None

    def candidates(self, source: str, event_type: str) -> list[Transition]:
        """Transições de `source` para o evento, na ordem da tabela."""
        return list(self._index.get((str(source), str(event_type)), ()))

    def outgoing(self, source: str) -> list[Transition]:
        """Todas as transições com origem em `source`, ignorando guards."""
        return [t for t in self._transitions if t.source == str(source)]

    def event_types(self) -> list[str]:
        """Eventos usados na tabela (ordem de primeira aparição)."""
        seen: dict[str, None] = {}
        for transition in self._transitions:
            seen.setdefault(transition.on, None)
        return list(seen)

    def __len__(self) -> int:
        return len(self._transitions)
