"""Contrato de persistência de sessão (SessionStore).

Separado para manter SRP e permitir reuso entre implementações.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING

from authflow.domain.protocols.session_store import SessionStoreProtocol

if TYPE_CHECKING:
    from authflow.application.session import AuthSession


class SessionStoreError(Exception):
    """Erro ao persistir ou recuperar sessão."""

    pass


class SessionStore(SessionStoreProtocol):
    """Contrato abstrato para armazenamento de AuthSession (um slot por store)."""

    @abstractmethod
    def save(self, session: AuthSession) -> None:
        """Persiste a sessão (sobrescreve a anterior).

        Raises:
            SessionStoreError: Em caso de falha de persistência
        """
        ...

    @abstractmethod
    def load(self) -> AuthSession | None:
        """Carrega a sessão se existir e não tiver expirado."""
        ...

    @abstractmethod
    def clear(self) -> None:
        """Remove a sessão persistida (idempotente)."""
        ...

    def exists(self) -> bool:
        """Verifica se há sessão ativa."""
        return self.load() is not None
