"""Engine FSM: interpreta uma TransitionTable sobre um par (estado, contexto).

Protocolo de `transition`:
1. Busca transições de (estado atual, evento) na ordem da tabela
2. Avalia guards; a primeira aprovada vence
3. Aplica action (patch raso no contexto); exceção => rollback total
4. Commit do novo estado
5. Append no histórico
6. Agenda o effect (após commit, sem esperar); falha é reportada, não desfaz
7. Retorna TransitionResult

Passos 1–5 rodam sob lock por instância e sem `await`, portanto são atômicos
em relação a outras corrotinas e threads.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any

from authflow.domain.fsm import (
    AmbiguousTransitionError,
    Context,
    Event,
    FSMConfigError,
    HistoryEntry,
    State,
    Transition,
    TransitionTable,
)
from authflow.domain.protocols.clock import Clock
from authflow.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)

EffectErrorSink = Callable[[BaseException, HistoryEntry], None]


@dataclass(slots=True)
class TransitionResult:
    """Resultado de `StateMachine.transition`.

    - success: se a transição foi aplicada
    - from_state: estado antes da chamada
    - to_state: estado após commit (None se rejeitada)
    - error: motivo da rejeição
    - effect: task do effect agendado (None se a transição não tem effect)
    """

    success: bool
    from_state: str
    to_state: str | None = None
    error: str | None = None
    effect: asyncio.Task[Any] | None = None

    async def wait_effect(self) -> BaseException | None:
        """Aguarda o effect desta transição; retorna a exceção (sem relançar)."""
        if self.effect is None:
            return None
        await asyncio.wait({self.effect})
        if self.effect.cancelled():
            return asyncio.CancelledError()
        return self.effect.exception()


class StateMachine:
    """Máquina de estados genérica dirigida por tabela."""

    def __init__(
        self,
        table: TransitionTable,
        initial_state: str,
        initial_context: Mapping[str, Any] | None = None,
        *,
        clock: Clock | None = None,
        strict: bool = False,
        on_effect_error: EffectErrorSink | None = None,
        name: str = "fsm",
    ) -> None:
        if not table.has_state(initial_state):
            raise FSMConfigError(f"Initial state {initial_state!r} not found")

        self._table = table
        self._name = name
        self._clock = clock
        self._strict = strict
        self._on_effect_error = on_effect_error
        self._initial_state: State = table.state(initial_state)
        self._initial_context: Context = dict(initial_context or {})

        self._lock = threading.Lock()
        self._state: State = self._initial_state
        self._context: Context = dict(self._initial_context)
        self._history: list[HistoryEntry] = []
        self._pending_effects: set[asyncio.Task[Any]] = set()

    # ------------------------------------------------------------------
    # Leituras
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def table(self) -> TransitionTable:
        return self._table

    @property
    def current_state(self) -> State:
        return self._state

    @property
    def context(self) -> Context:
        """Cópia do contexto corrente."""
        return dict(self._context)

    @property
    def history(self) -> tuple[HistoryEntry, ...]:
        """Histórico de transições (somente leitura)."""
        return tuple(self._history)

    @property
    def pending_effects(self) -> int:
        return len(self._pending_effects)

    def is_final(self) -> bool:
        return self._state.is_final

    def now(self) -> datetime:
        """Agora segundo o relógio injetado (UTC se ausente)."""
        if self._clock is not None:
            return self._clock.now()
        return datetime.now(tz=UTC)

    def make_event(self, event: Event | str, payload: Mapping[str, Any] | None = None) -> Event:
        """Normaliza `event` para Event, carimbando com o relógio da máquina."""
        if isinstance(event, Event):
            if payload is not None:
                raise ValueError("payload must be None when an Event instance is given")
            return event
        return Event(type=str(event), payload=dict(payload or {}), timestamp=self.now())

    def can_transition(self, event: Event | str, payload: Mapping[str, Any] | None = None) -> bool:
        """True se o evento dispararia uma transição agora. Não altera nada."""
        evt = self.make_event(event, payload)
        transition, _ = self._resolve(evt)
        return transition is not None

    def possible_transitions(self) -> list[Transition]:
        """Transições com origem no estado atual, sem avaliar guards."""
        return self._table.outgoing(self._state.name)

    # ------------------------------------------------------------------
    # Mutação
    # ------------------------------------------------------------------

    async def transition(
        self, event: Event | str, payload: Mapping[str, Any] | None = None
    ) -> TransitionResult:
        """Executa o protocolo completo de transição (ver docstring do módulo)."""
        evt = self.make_event(event, payload)

        with self._lock:
            result, transition, committed, entry = self._apply(evt)

        if transition is not None and transition.effect is not None and entry is not None:
            result.effect = self._schedule_effect(transition, committed, evt, entry)
        return result

    def reset(self) -> None:
        """Volta ao estado/contexto iniciais e limpa o histórico. Idempotente.

        Effects já agendados não são cancelados.
        """
        with self._lock:
            self._state = self._initial_state
            self._context = dict(self._initial_context)
            self._history.clear()
        logger.debug("FSM reset", extra={"machine": self._name, "state": self._state.name})

    async def drain_effects(self) -> None:
        """Aguarda todos os effects pendentes (útil em testes e shutdown)."""
        while self._pending_effects:
            await asyncio.gather(*list(self._pending_effects), return_exceptions=True)

    # ------------------------------------------------------------------
    # Diagnóstico
    # ------------------------------------------------------------------

    def to_diagnostics(self) -> dict[str, Any]:
        """Projeção JSON-serializável do estado atual (debug)."""
        from authflow.application.fsm_diagnostics import snapshot

        return snapshot(self)

    def to_graph(self, fmt: str = "dot") -> str:
        """Diagrama da tabela ("dot" ou "mermaid") com o estado atual destacado."""
        from authflow.application.fsm_diagnostics import to_dot, to_mermaid

        if fmt == "dot":
            return to_dot(self._table, current=self._state.name, name=self._name)
        if fmt == "mermaid":
            return to_mermaid(self._table, current=self._state.name)
        raise ValueError(f"Unsupported graph format: {fmt!r}")

    # ------------------------------------------------------------------
    # Internos
    # ------------------------------------------------------------------

    def _resolve(self, event: Event) -> tuple[Transition | None, str | None]:
        """Seleciona a transição para `event` a partir do estado atual.

        Retorna (transição, None) ou (None, motivo da rejeição).
        Levanta AmbiguousTransitionError em modo estrito.
        """
        state = self._state.name
        candidates = self._table.candidates(state, event.type)
        if not candidates:
            return None, f"No transition for event {event.type!r} from state {state!r}"

        view = MappingProxyType(self._context)
        passed: list[Transition] = []
        for candidate in candidates:
            try:
                allowed = candidate.allows(view, event)
            except Exception as exc:
                logger.warning(
                    "Transition guard raised",
                    extra={
                        "machine": self._name,
                        "state": state,
                        "event": event.type,
                        "target": candidate.target,
                        "error": str(exc),
                    },
                )
                return None, (
                    f"Transition guard failed for event {event.type!r} "
                    f"from state {state!r}: {exc}"
                )
            if allowed:
                passed.append(candidate)

        if not passed:
            return None, f"Transition guard blocked event {event.type!r} from state {state!r}"

        if len(passed) > 1:
            targets = [t.target for t in passed]
            logger.warning(
                "Ambiguous transition",
                extra={
                    "machine": self._name,
                    "state": state,
                    "event": event.type,
                    "targets": targets,
                },
            )
            if self._strict:
                raise AmbiguousTransitionError(state, event.type, targets)

        return passed[0], None

    def _apply(
        self, event: Event
    ) -> tuple[TransitionResult, Transition | None, Context, HistoryEntry | None]:
        """Passos 1–5. Chamado sob `self._lock`."""
        source = self._state.name
        transition, error = self._resolve(event)

        if transition is None:
            logger.debug(
                "Transition rejected",
                extra={
                    "machine": self._name,
                    "state": source,
                    "event": event.type,
                    "error": error,
                },
            )
            rejected = TransitionResult(success=False, from_state=source, error=error)
            return rejected, None, self._context, None

        new_context = self._context
        if transition.action is not None:
            try:
                patch = transition.action(MappingProxyType(self._context), event)
                if patch is not None and not isinstance(patch, Mapping):
                    raise TypeError(
                        f"Action must return a mapping or None, got {type(patch).__name__}"
                    )
                if patch:
                    new_context = {**self._context, **patch}
            except Exception as exc:
                logger.warning(
                    "Transition action failed",
                    extra={
                        "machine": self._name,
                        "state": source,
                        "event": event.type,
                        "target": transition.target,
                        "error": str(exc),
                    },
                )
                rejected = TransitionResult(
                    success=False, from_state=source, error=str(exc) or type(exc).__name__
                )
                return rejected, None, self._context, None

        # Tabela validada na construção; se falhar aqui é erro de configuração.
        target_state = self._table.state(transition.target)

        self._context = new_context
        self._state = target_state
        entry = HistoryEntry(
            source=source,
            target=target_state.name,
            event=event,
            timestamp=self.now(),
        )
        self._history.append(entry)

        logger.info(
            "Transition applied",
            extra={
                "machine": self._name,
                "from": source,
                "to": target_state.name,
                "event": event.type,
                "history_length": len(self._history),
            },
        )

        result = TransitionResult(success=True, from_state=source, to_state=target_state.name)
        return result, transition, new_context, entry

    def _schedule_effect(
        self, transition: Transition, committed: Context, event: Event, entry: HistoryEntry
    ) -> asyncio.Task[Any] | None:
        assert transition.effect is not None

        try:
            outcome = transition.effect(MappingProxyType(committed), event)
        except Exception as exc:
            self._report_effect_failure(exc, transition, event, entry)
            return None

        if not inspect.isawaitable(outcome):
            return None

        task = asyncio.ensure_future(outcome)
        self._pending_effects.add(task)

        def _done(done: asyncio.Task[Any]) -> None:
            self._pending_effects.discard(done)
            if done.cancelled():
                logger.warning(
                    "Transition effect cancelled",
                    extra={"machine": self._name, "event": event.type, "to": transition.target},
                )
                return
            exc = done.exception()
            if exc is not None:
                self._report_effect_failure(exc, transition, event, entry)

        task.add_done_callback(_done)
        return task

    def _report_effect_failure(
        self,
        exc: BaseException,
        transition: Transition,
        event: Event,
        entry: HistoryEntry,
    ) -> None:
        logger.error(
            "Transition effect failed",
            extra={
                "machine": self._name,
                "from": transition.source,
                "to": transition.target,
                "event": event.type,
                "error": str(exc),
                "error_type": type(exc).__name__,
            },
        )
        if self._on_effect_error is None:
            return
        try:
            self._on_effect_error(exc, entry)
        except Exception:
            logger.exception("Effect error sink failed", extra={"machine": self._name})
