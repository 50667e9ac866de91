"""Contexto do domínio de autenticação.

O engine trabalha com um dict simples; `AuthContext` é a visão tipada usada
pela façade e pelos testes.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AuthUser(BaseModel):
    """Identidade do usuário autenticado."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    first_name: str = ""
    last_name: str = ""

    @property
    def display_name(self) -> str:
        full = f"{self.first_name} {self.last_name}".strip()
        return full or self.email


class AuthContext(BaseModel):
    """Visão tipada do contexto da máquina de autenticação."""

    model_config = ConfigDict(frozen=True)

    user: AuthUser | None = None
    user_name: str | None = None
    error: str | None = None
    token: str | None = None
    is_guest: bool = False
    last_activity: datetime | None = None
    attempts: int = Field(default=0, ge=0)
    lock_until: datetime | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> AuthContext:
        """Constrói a partir do dict do engine (ignora chaves desconhecidas)."""
        known = {key: data[key] for key in cls.model_fields if key in data}
        return cls.model_validate(known)


def initial_auth_context(**overrides: Any) -> dict[str, Any]:
    """Contexto inicial: attempts=0, is_guest=False, demais campos vazios."""
    context: dict[str, Any] = {
        "user": None,
        "user_name": None,
        "error": None,
        "token": None,
        "is_guest": False,
        "last_activity": None,
        "attempts": 0,
        "lock_until": None,
    }
    context.update(overrides)
    return context


def coerce_user(value: Any) -> AuthUser | None:
    """Aceita AuthUser, dict ou None vindos do payload do evento."""
    if value is None or isinstance(value, AuthUser):
        return value
    return AuthUser.model_validate(value)
