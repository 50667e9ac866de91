"""Política de lockout e timeout de sessão."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

DEFAULT_MAX_LOGIN_ATTEMPTS: int = 5
DEFAULT_LOCKOUT: timedelta = timedelta(minutes=15)
DEFAULT_SESSION_TIMEOUT: timedelta = timedelta(minutes=30)


@dataclass(frozen=True, slots=True)
class AuthPolicy:
    """Limites aplicados pelos guards/actions da máquina de autenticação."""

    max_login_attempts: int = DEFAULT_MAX_LOGIN_ATTEMPTS
    lockout: timedelta = DEFAULT_LOCKOUT
    session_timeout: timedelta = DEFAULT_SESSION_TIMEOUT

    def __post_init__(self) -> None:
        if self.max_login_attempts < 1:
            raise ValueError("max_login_attempts deve ser >= 1")
        if self.lockout <= timedelta(0):
            raise ValueError("lockout deve ser positivo")
        if self.session_timeout <= timedelta(0):
            raise ValueError("session_timeout deve ser positivo")
