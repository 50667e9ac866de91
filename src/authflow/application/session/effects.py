"""Effects de persistência da sessão de autenticação.

Implementa AuthEffects sobre um SessionStore síncrono: o I/O roda em thread
(anyio) para não bloquear o event loop. Chamadas ao store são serializadas
na ordem em que os effects foram agendados (save e clear nunca se cruzam).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any

import anyio

from authflow.application.session.models import AuthSession
from authflow.domain.fsm import Event
from authflow.domain.protocols.session_store import SessionStoreProtocol
from authflow.observability.logging import get_logger, mask_identifier

logger: logging.Logger = get_logger(__name__)


class SessionPersistenceEffects:
    """Persistir/limpar a sessão de uma máquina (um session_id por instância)."""

    def __init__(self, store: SessionStoreProtocol, session_id: str) -> None:
        self._store = store
        self._session_id = session_id
        self._created_at: datetime | None = None
        self._io_lock = asyncio.Lock()

    @property
    def session_id(self) -> str:
        return self._session_id

    def adopt(self, session: AuthSession) -> None:
        """Continua uma sessão restaurada (mantém created_at original)."""
        self._created_at = session.created_at

    async def persist_session(self, context: Mapping[str, Any], event: Event) -> None:
        async with self._io_lock:
            if self._created_at is None:
                self._created_at = event.timestamp
            session = AuthSession.from_context(
                context,
                session_id=self._session_id,
                now=event.timestamp,
                created_at=self._created_at,
            )
            await anyio.to_thread.run_sync(self._store.save, session)
        logger.debug(
            "Session persisted",
            extra={"session_id": mask_identifier(self._session_id, 8), "event": event.type},
        )

    async def clear_session(self, context: Mapping[str, Any], event: Event) -> None:
        async with self._io_lock:
            self._created_at = None
            await anyio.to_thread.run_sync(self._store.clear)
        logger.debug(
            "Session cleared",
            extra={"session_id": mask_identifier(self._session_id, 8), "event": event.type},
        )
