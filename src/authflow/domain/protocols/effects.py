"""Protocolo dos side effects da máquina de autenticação.

A tabela de transições só conhece este contrato; a implementação concreta
(persistência via SessionStore) vive na camada de aplicação.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from authflow.domain.fsm import Event


class AuthEffects(Protocol):
    """Effects executados após commit de transições de autenticação."""

    async def persist_session(self, context: Mapping[str, Any], event: Event) -> None:
        """Grava a sessão emitida (login, cadastro, refresh, atividade)."""
        ...

    async def clear_session(self, context: Mapping[str, Any], event: Event) -> None:
        """Remove dados de sessão persistidos (logout, expiração, lock)."""
        ...
