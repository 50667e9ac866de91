"""Erros estruturais da FSM.

Falhas de domínio (credencial inválida, conta bloqueada, sessão expirada) NÃO
usam exceções: viram estados. Aqui ficam apenas erros de programação/configuração.
"""

from __future__ import annotations


class FSMError(Exception):
    """Erro base da FSM."""

    pass


class FSMConfigError(FSMError):
    """Tabela de transições inconsistente (estado desconhecido, duplicado, etc.)."""

    pass


class AmbiguousTransitionError(FSMConfigError):
    """Mais de uma transição com guard aprovado para o mesmo (estado, evento)."""

    def __init__(self, state: str, event_type: str, targets: list[str]) -> None:
        self.state = state
        self.event_type = event_type
        self.targets = targets
        super().__init__(
            f"Ambiguous transition for event {event_type!r} from state {state!r}: "
            f"guards passed for targets {targets}"
        )
