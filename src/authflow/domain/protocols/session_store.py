"""Protocolos de domínio para persistência da sessão de autenticação."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from authflow.application.session import AuthSession


class SessionStoreProtocol(ABC):
    """Contrato mínimo síncrono: um slot de sessão por store."""

    @abstractmethod
    def save(self, session: AuthSession) -> None: ...

    @abstractmethod
    def load(self) -> AuthSession | None: ...

    @abstractmethod
    def clear(self) -> None: ...
