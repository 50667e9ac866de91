"""Projeções de diagnóstico da FSM (DOT, Mermaid, snapshot JSON).

Somente leitura: nada aqui dirige comportamento do engine.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from pydantic_core import to_jsonable_python

from authflow.domain.fsm import HistoryEntry, TransitionTable
from authflow.observability.logging import mask_identifier

if TYPE_CHECKING:
    from authflow.application.fsm_engine import StateMachine

# Chaves de contexto nunca expostas em diagnóstico
REDACTED_KEYS: frozenset[str] = frozenset({"token", "password", "refresh_token"})
REDACTED_VALUE = "***"
# Identificadores pessoais exibidos apenas mascarados (em qualquer nível)
MASKED_KEYS: frozenset[str] = frozenset({"email", "user_name"})


def _edge_label(on: str, guarded: bool) -> str:
    return f"{on} [guarded]" if guarded else on


def to_dot(table: TransitionTable, current: str | None = None, name: str = "StateMachine") -> str:
    """Diagrama Graphviz. Estado atual preenchido; finais com doublecircle."""
    lines = [f'digraph "{name}" {{', "  rankdir=LR;", "  node [shape=circle];", ""]

    for state_name, state in table.states.items():
        attrs = [f"shape={'doublecircle' if state.is_final else 'circle'}"]
        if state_name == current:
            attrs.append("style=filled")
            attrs.append('fillcolor="lightblue"')
        lines.append(f'  "{state_name}" [{", ".join(attrs)}];')

    lines.append("")
    for transition in table.transitions:
        label = _edge_label(transition.on, transition.guard is not None)
        lines.append(f'  "{transition.source}" -> "{transition.target}" [label="{label}"];')

    lines.append("}")
    return "\n".join(lines)


def to_mermaid(table: TransitionTable, current: str | None = None) -> str:
    """Diagrama `stateDiagram-v2` do Mermaid."""
    lines = ["stateDiagram-v2"]
    for transition in table.transitions:
        label = _edge_label(transition.on, transition.guard is not None)
        lines.append(f"    {transition.source} --> {transition.target}: {label}")
    for state_name, state in table.states.items():
        if state.is_final:
            lines.append(f"    {state_name} --> [*]")
    if current is not None:
        lines.append("    classDef current fill:#add8e6")
        lines.append(f"    class {current} current")
    return "\n".join(lines)


def redact(context: Mapping[str, Any], keys: Iterable[str] = REDACTED_KEYS) -> dict[str, Any]:
    """Copia o contexto mascarando chaves sensíveis presentes e não vazias."""
    hidden = set(keys)
    return {
        key: (REDACTED_VALUE if key in hidden and value else value)
        for key, value in context.items()
    }


def mask_identifiers(value: Any, keys: Iterable[str] = MASKED_KEYS) -> Any:
    """Mascara e-mails/identificadores em dicts e listas já serializáveis."""
    masked = frozenset(keys)
    if isinstance(value, Mapping):
        return {
            key: (
                mask_identifier(item)
                if key in masked and isinstance(item, str)
                else mask_identifiers(item, masked)
            )
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [mask_identifiers(item, masked) for item in value]
    return value


def history_to_json(history: Iterable[HistoryEntry]) -> list[dict[str, str]]:
    """Histórico como lista de dicts com timestamps ISO-8601."""
    return [
        {
            "from": entry.source,
            "to": entry.target,
            "event": entry.event.type,
            "timestamp": entry.timestamp.isoformat(),
        }
        for entry in history
    ]


def snapshot(machine: StateMachine) -> dict[str, Any]:
    """Estado atual, contexto (redigido), histórico e eventos possíveis."""
    return {
        "machine": machine.name,
        "current_state": machine.current_state.name,
        "is_final": machine.is_final(),
        "context": mask_identifiers(to_jsonable_python(redact(machine.context))),
        "history": history_to_json(machine.history),
        "possible_transitions": [t.on for t in machine.possible_transitions()],
    }
