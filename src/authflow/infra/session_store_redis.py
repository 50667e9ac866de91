"""Implementação de SessionStore usando Redis (produção)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from authflow.infra.session_contract import SessionStore, SessionStoreError
from authflow.observability.logging import get_logger, mask_identifier

if TYPE_CHECKING:
    from authflow.application.session import AuthSession

logger: logging.Logger = get_logger(__name__)


class RedisSessionStore(SessionStore):
    """Armazenamento em Redis. Uma chave por máquina (`{prefix}:{session_key}`)."""

    def __init__(
        self,
        redis_client: Any,
        session_key: str,
        key_prefix: str = "auth_session",
        ttl_seconds: int = 7200,
    ) -> None:
        self._redis = redis_client
        self._key = f"{key_prefix}:{session_key}"
        self._ttl_seconds = ttl_seconds

    @property
    def key(self) -> str:
        return self._key

    def save(self, session: AuthSession) -> None:
        payload = session.model_dump_json()

        try:
            self._redis.setex(self._key, self._ttl_seconds, payload)
            logger.debug(
                "Session saved (Redis)",
                extra={
                    "session_id": mask_identifier(session.session_id, 8),
                    "ttl_seconds": self._ttl_seconds,
                },
            )
        except Exception as e:
            logger.error(
                "Failed to save session to Redis",
                extra={"session_id": mask_identifier(session.session_id, 8), "error": str(e)},
            )
            raise SessionStoreError(f"Redis save failed: {e}") from e

    def load(self) -> AuthSession | None:
        try:
            payload = self._redis.get(self._key)
        except Exception as e:
            logger.error("Failed to load session from Redis", extra={"error": str(e)})
            raise SessionStoreError(f"Redis load failed: {e}") from e

        if not payload:
            logger.debug("Session not found (Redis)")
            return None

        # redis-py retorna bytes sem decode_responses=True
        if isinstance(payload, bytes):
            payload = payload.decode("utf-8")

        from authflow.application.session import AuthSession

        try:
            session = AuthSession.model_validate_json(payload)
        except ValueError as e:
            logger.warning("Discarding malformed session payload (Redis)", extra={"error": str(e)})
            self.clear()
            return None

        logger.debug(
            "Session loaded (Redis)",
            extra={"session_id": mask_identifier(session.session_id, 8)},
        )
        return session

    def clear(self) -> None:
        try:
            deleted = self._redis.delete(self._key)
        except Exception as e:
            logger.error("Failed to delete session from Redis", extra={"error": str(e)})
            raise SessionStoreError(f"Redis delete failed: {e}") from e
        if deleted:
            logger.debug("Session cleared (Redis)")
