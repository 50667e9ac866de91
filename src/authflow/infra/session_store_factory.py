"""Factory de SessionStore conforme Settings.session_store_backend."""

from __future__ import annotations

from typing import Any

from authflow.config.settings import Settings
from authflow.domain.protocols.clock import Clock
from authflow.infra.session_contract import SessionStore
from authflow.infra.session_store_memory import InMemorySessionStore
from authflow.infra.session_store_redis import RedisSessionStore


def create_session_store(
    settings: Settings,
    session_key: str,
    redis_client: Any | None = None,
    clock: Clock | None = None,
) -> SessionStore:
    """Cria o store configurado.

    Para `redis`, usa `redis_client` se fornecido; caso contrário cria um a
    partir de `settings.redis_url`.
    """
    backend = settings.session_store_backend.lower()

    if backend == "memory":
        return InMemorySessionStore(ttl_seconds=settings.session_ttl_seconds, clock=clock)

    if backend == "redis":
        if redis_client is None:
            if not settings.redis_url:
                raise ValueError("SESSION_STORE_BACKEND=redis requer REDIS_URL configurado")
            import redis

            redis_client = redis.Redis.from_url(settings.redis_url)
        return RedisSessionStore(
            redis_client,
            session_key=session_key,
            key_prefix=settings.session_key_prefix,
            ttl_seconds=settings.session_ttl_seconds,
        )

    raise ValueError(f"Unsupported session store backend: {settings.session_store_backend!r}")
