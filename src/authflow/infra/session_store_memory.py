"""Implementação de SessionStore em memória (apenas dev/testes)."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

from authflow.domain.protocols.clock import Clock
from authflow.infra.clock import SystemClock
from authflow.infra.session_contract import SessionStore
from authflow.observability.logging import get_logger, mask_identifier

if TYPE_CHECKING:
    from authflow.application.session import AuthSession

logger: logging.Logger = get_logger(__name__)


class InMemorySessionStore(SessionStore):
    """Armazenamento em memória (não usar em produção)."""

    def __init__(self, ttl_seconds: int = 7200, clock: Clock | None = None) -> None:
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock or SystemClock()
        self._entry: tuple[AuthSession, float] | None = None

    def save(self, session: AuthSession) -> None:
        expire_at = (self._clock.now() + self._ttl).timestamp()
        self._entry = (session, expire_at)
        logger.debug(
            "Session saved (in-memory)",
            extra={
                "session_id": mask_identifier(session.session_id, 8),
                "ttl_seconds": int(self._ttl.total_seconds()),
            },
        )

    def load(self) -> AuthSession | None:
        if self._entry is None:
            logger.debug("Session not found (in-memory)")
            return None

        session, expire_at = self._entry
        if self._clock.now().timestamp() > expire_at:
            self._entry = None
            logger.debug(
                "Session expired (in-memory)",
                extra={"session_id": mask_identifier(session.session_id, 8)},
            )
            return None

        logger.debug(
            "Session loaded (in-memory)",
            extra={"session_id": mask_identifier(session.session_id, 8)},
        )
        return session

    def clear(self) -> None:
        if self._entry is not None:
            logger.debug(
                "Session cleared (in-memory)",
                extra={"session_id": mask_identifier(self._entry[0].session_id, 8)},
            )
        self._entry = None
