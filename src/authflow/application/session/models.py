"""Models de sessão: AuthSession.

AuthSession é o que sobrevive fora da máquina: identidade, token e última
atividade. Serializável (pydantic) para memória/Redis.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from authflow.domain.auth.context import AuthUser, coerce_user


def _new_session_id() -> str:
    return uuid.uuid4().hex


class AuthSession(BaseModel):
    """Sessão de autenticação persistida."""

    session_id: str = Field(default_factory=_new_session_id)
    user: AuthUser
    token: str | None = None
    last_activity: datetime
    created_at: datetime

    def to_event_payload(self) -> dict[str, Any]:
        """Payload do evento SESSION_RESTORED."""
        return {
            "user": self.user,
            "token": self.token,
            "last_activity": self.last_activity,
            "session_id": self.session_id,
        }

    @classmethod
    def from_context(
        cls,
        context: Mapping[str, Any],
        session_id: str,
        now: datetime,
        created_at: datetime | None = None,
    ) -> AuthSession:
        """Monta a sessão a partir do contexto já commitado da máquina.

        `now` vem do evento que disparou a persistência (relógio da máquina).
        """
        user = coerce_user(context.get("user"))
        if user is None:
            raise ValueError("cannot persist a session without an authenticated user")
        return cls(
            session_id=session_id,
            user=user,
            token=context.get("token"),
            last_activity=context.get("last_activity") or now,
            created_at=created_at or now,
        )
