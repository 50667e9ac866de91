"""Eventos que disparam transições na máquina de autenticação."""

from __future__ import annotations

from enum import StrEnum


class AuthEvent(StrEnum):
    """Eventos canônicos do ciclo de autenticação."""

    # === Login ===
    LOGIN_REQUEST = "LOGIN_REQUEST"
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILURE = "LOGIN_FAILURE"
    LOGOUT = "LOGOUT"

    # === Cadastro ===
    REGISTER_REQUEST = "REGISTER_REQUEST"
    REGISTER_SUCCESS = "REGISTER_SUCCESS"
    REGISTER_FAILURE = "REGISTER_FAILURE"

    # === Sessão ===
    TOKEN_REFRESH = "TOKEN_REFRESH"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    SESSION_TIMEOUT = "SESSION_TIMEOUT"
    """Injetado por timer externo; o engine não tem relógio próprio."""

    SESSION_RESTORED = "SESSION_RESTORED"
    """Sessão persistida ainda válida foi recarregada do store."""

    USER_ACTIVITY = "USER_ACTIVITY"
    """Atividade do usuário; renova last_activity."""

    # === Segurança ===
    ACCOUNT_LOCKED = "ACCOUNT_LOCKED"
    ACCOUNT_UNLOCKED = "ACCOUNT_UNLOCKED"

    # === Convidado ===
    ENTER_GUEST_MODE = "ENTER_GUEST_MODE"
    EXIT_GUEST_MODE = "EXIT_GUEST_MODE"
