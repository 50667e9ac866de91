"""Camada de infraestrutura: adapters para serviços externos.

- Session: InMemorySessionStore, RedisSessionStore, create_session_store
- Clock: SystemClock

Uso típico:
    from authflow.infra import create_session_store

Infraestrutura não decide regra de negócio; logs estruturados sem PII.
"""

from authflow.infra.clock import SystemClock
from authflow.infra.session_contract import SessionStore, SessionStoreError
from authflow.infra.session_store_factory import create_session_store
from authflow.infra.session_store_memory import InMemorySessionStore
from authflow.infra.session_store_redis import RedisSessionStore

__all__ = [
    "InMemorySessionStore",
    "RedisSessionStore",
    "SessionStore",
    "SessionStoreError",
    "SystemClock",
    "create_session_store",
]
