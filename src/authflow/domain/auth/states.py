"""Estados canônicos do ciclo de autenticação.

Nenhum estado é terminal: `error` e `locked` são recuperáveis e a máquina
nunca encerra.
"""

from __future__ import annotations

from enum import StrEnum

from authflow.domain.fsm import State


class AuthState(StrEnum):
    """8 estados do ciclo de autenticação."""

    UNAUTHENTICATED = "unauthenticated"
    """Usuário não logado."""

    AUTHENTICATING = "authenticating"
    """Validação de credenciais em andamento."""

    AUTHENTICATED = "authenticated"
    """Usuário autenticado com sessão ativa."""

    REGISTERING = "registering"
    """Cadastro em andamento."""

    LOCKED = "locked"
    """Conta bloqueada (tentativas excessivas ou bloqueio administrativo)."""

    GUEST = "guest"
    """Modo convidado, sem credenciais."""

    LOGGING_OUT = "logging_out"
    """Logout em andamento."""

    ERROR = "error"
    """Falha de login/cadastro; motivo em context["error"]."""


AUTH_STATES: tuple[State, ...] = (
    State(
        AuthState.UNAUTHENTICATED,
        metadata={
            "description": "User is not logged in",
            "allowed_events": [
                "LOGIN_REQUEST",
                "REGISTER_REQUEST",
                "ENTER_GUEST_MODE",
                "SESSION_RESTORED",
                "ACCOUNT_LOCKED",
            ],
        },
    ),
    State(
        AuthState.AUTHENTICATING,
        metadata={
            "description": "Authentication process in progress",
            "allowed_events": ["LOGIN_SUCCESS", "LOGIN_FAILURE"],
        },
    ),
    State(
        AuthState.AUTHENTICATED,
        metadata={
            "description": "User is successfully authenticated",
            "allowed_events": [
                "LOGOUT",
                "TOKEN_REFRESH",
                "TOKEN_EXPIRED",
                "SESSION_TIMEOUT",
                "USER_ACTIVITY",
                "ACCOUNT_LOCKED",
            ],
        },
    ),
    State(
        AuthState.REGISTERING,
        metadata={
            "description": "Registration process in progress",
            "allowed_events": ["REGISTER_SUCCESS", "REGISTER_FAILURE"],
        },
    ),
    State(
        AuthState.LOCKED,
        metadata={
            "description": "Account is locked due to security reasons",
            "allowed_events": ["ACCOUNT_UNLOCKED"],
        },
    ),
    State(
        AuthState.GUEST,
        metadata={
            "description": "User is in guest mode",
            "allowed_events": ["EXIT_GUEST_MODE", "LOGIN_REQUEST"],
        },
    ),
    State(
        AuthState.LOGGING_OUT,
        metadata={
            "description": "Logout process in progress",
            "allowed_events": ["LOGOUT"],
        },
    ),
    State(
        AuthState.ERROR,
        metadata={
            "description": "Error state during authentication",
            "allowed_events": ["LOGIN_REQUEST", "REGISTER_REQUEST"],
        },
    ),
)
