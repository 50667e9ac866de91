"""Tabela de transições da máquina de autenticação.

Regras:
- Guards e actions são puros e usam `event.timestamp` como "agora"
  (o relógio é injetado na máquina que carimba os eventos)
- LOGIN_FAILURE tem duas entradas com guards complementares:
  attempts + 1 < max  -> error
  attempts + 1 >= max -> locked
- Effects (persistir/limpar sessão) vêm de um AuthEffects injetado
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from authflow.domain.auth.context import coerce_user
from authflow.domain.auth.events import AuthEvent
from authflow.domain.auth.policy import AuthPolicy
from authflow.domain.auth.states import AUTH_STATES, AuthState
from authflow.domain.fsm import Event, Transition, TransitionTable
from authflow.domain.protocols.effects import AuthEffects

LOGIN_FAILED_MESSAGE = "Authentication failed"
REGISTER_FAILED_MESSAGE = "Registration failed"
LOCKED_MESSAGE = "Account locked due to too many failed attempts"
ADMIN_LOCKED_MESSAGE = "Account locked"
TOKEN_EXPIRED_MESSAGE = "Session expired. Please login again."
SESSION_TIMEOUT_MESSAGE = "Session timed out. Please login again."

Ctx = Mapping[str, Any]

_CLEARED_IDENTITY: dict[str, Any] = {"user": None, "token": None, "user_name": None}


def _attempts(context: Ctx) -> int:
    return int(context.get("attempts") or 0)


# ---------------------------------------------------------------------------
# Actions sem parâmetros
# ---------------------------------------------------------------------------


def start_login(context: Ctx, event: Event) -> dict[str, Any]:
    return {"error": None, "user_name": event.get("email"), "is_guest": False}


def start_registration(context: Ctx, event: Event) -> dict[str, Any]:
    return {"error": None, "is_guest": False}


def authenticate(context: Ctx, event: Event) -> dict[str, Any]:
    """Sucesso de login/cadastro: identidade, zera tentativas, marca atividade."""
    return {
        "user": coerce_user(event.get("user")),
        "token": event.get("token"),
        "error": None,
        "attempts": 0,
        "lock_until": None,
        "is_guest": False,
        "last_activity": event.timestamp,
    }


def restore_session(context: Ctx, event: Event) -> dict[str, Any]:
    """Como `authenticate`, mas preserva a última atividade real da sessão."""
    return {**authenticate(context, event), "last_activity": event.get("last_activity")}


def fail_registration(context: Ctx, event: Event) -> dict[str, Any]:
    return {"error": event.get("error") or REGISTER_FAILED_MESSAGE}


def enter_guest(context: Ctx, event: Event) -> dict[str, Any]:
    return {"is_guest": True, "error": None}


def exit_guest(context: Ctx, event: Event) -> dict[str, Any]:
    return {"is_guest": False}


def finish_logout(context: Ctx, event: Event) -> dict[str, Any]:
    return {**_CLEARED_IDENTITY, "error": None, "last_activity": None}


def expire_token(context: Ctx, event: Event) -> dict[str, Any]:
    return {"user": None, "token": None, "error": TOKEN_EXPIRED_MESSAGE}


def time_out_session(context: Ctx, event: Event) -> dict[str, Any]:
    return {"user": None, "token": None, "error": SESSION_TIMEOUT_MESSAGE}


def refresh_token(context: Ctx, event: Event) -> dict[str, Any]:
    token = event.get("token")
    if not token:
        raise ValueError("TOKEN_REFRESH requires a token")
    return {"token": token, "last_activity": event.timestamp}


def record_activity(context: Ctx, event: Event) -> dict[str, Any]:
    return {"last_activity": event.timestamp}


def unlock(context: Ctx, event: Event) -> dict[str, Any]:
    return {"error": None, "attempts": 0, "lock_until": None}


def lock_expired(context: Ctx, event: Event) -> bool:
    """Unlock só é permitido sem lock_until ou com lock_until já vencido."""
    lock_until = context.get("lock_until")
    return lock_until is None or lock_until <= event.timestamp


# ---------------------------------------------------------------------------
# Guards/actions dependentes da política
# ---------------------------------------------------------------------------


class _PolicyRules:
    """Guards/actions parametrizados por AuthPolicy."""

    def __init__(self, policy: AuthPolicy) -> None:
        self._policy = policy

    def below_lock_threshold(self, context: Ctx, event: Event) -> bool:
        return _attempts(context) + 1 < self._policy.max_login_attempts

    def reaches_lock_threshold(self, context: Ctx, event: Event) -> bool:
        return _attempts(context) + 1 >= self._policy.max_login_attempts

    def fail_login(self, context: Ctx, event: Event) -> dict[str, Any]:
        return {
            "error": event.get("error") or LOGIN_FAILED_MESSAGE,
            "attempts": _attempts(context) + 1,
            "user": None,
            "token": None,
        }

    def lock_after_failures(self, context: Ctx, event: Event) -> dict[str, Any]:
        return {
            **_CLEARED_IDENTITY,
            "error": LOCKED_MESSAGE,
            "attempts": _attempts(context) + 1,
            "lock_until": event.timestamp + self._policy.lockout,
        }

    def lock_account(self, context: Ctx, event: Event) -> dict[str, Any]:
        lock_until = event.get("lock_until") or event.timestamp + self._policy.lockout
        return {
            **_CLEARED_IDENTITY,
            "error": event.get("reason") or ADMIN_LOCKED_MESSAGE,
            "is_guest": False,
            "lock_until": lock_until,
        }

    def session_fresh(self, context: Ctx, event: Event) -> bool:
        """Sessão restaurada precisa de usuário e atividade dentro do timeout."""
        last_activity = event.get("last_activity")
        if event.get("user") is None or last_activity is None:
            return False
        return event.timestamp - last_activity < self._policy.session_timeout


def build_auth_transition_table(
    policy: AuthPolicy | None = None,
    effects: AuthEffects | None = None,
) -> TransitionTable:
    """Monta a tabela de autenticação (ordem da lista = ordem de resolução)."""
    rules = _PolicyRules(policy or AuthPolicy())
    persist = effects.persist_session if effects is not None else None
    clear = effects.clear_session if effects is not None else None

    S = AuthState
    E = AuthEvent

    transitions = [
        # Login
        Transition(S.UNAUTHENTICATED, S.AUTHENTICATING, E.LOGIN_REQUEST, action=start_login),
        Transition(S.GUEST, S.AUTHENTICATING, E.LOGIN_REQUEST, action=start_login),
        Transition(S.ERROR, S.AUTHENTICATING, E.LOGIN_REQUEST, action=start_login),
        Transition(
            S.AUTHENTICATING,
            S.AUTHENTICATED,
            E.LOGIN_SUCCESS,
            action=authenticate,
            effect=persist,
        ),
        Transition(
            S.AUTHENTICATING,
            S.ERROR,
            E.LOGIN_FAILURE,
            guard=rules.below_lock_threshold,
            action=rules.fail_login,
        ),
        Transition(
            S.AUTHENTICATING,
            S.LOCKED,
            E.LOGIN_FAILURE,
            guard=rules.reaches_lock_threshold,
            action=rules.lock_after_failures,
        ),
        # Logout (duas fases)
        Transition(S.AUTHENTICATED, S.LOGGING_OUT, E.LOGOUT),
        Transition(
            S.LOGGING_OUT,
            S.UNAUTHENTICATED,
            E.LOGOUT,
            action=finish_logout,
            effect=clear,
        ),
        # Cadastro
        Transition(
            S.UNAUTHENTICATED, S.REGISTERING, E.REGISTER_REQUEST, action=start_registration
        ),
        Transition(S.ERROR, S.REGISTERING, E.REGISTER_REQUEST, action=start_registration),
        Transition(
            S.REGISTERING,
            S.AUTHENTICATED,
            E.REGISTER_SUCCESS,
            action=authenticate,
            effect=persist,
        ),
        Transition(S.REGISTERING, S.ERROR, E.REGISTER_FAILURE, action=fail_registration),
        # Convidado
        Transition(S.UNAUTHENTICATED, S.GUEST, E.ENTER_GUEST_MODE, action=enter_guest),
        Transition(S.GUEST, S.UNAUTHENTICATED, E.EXIT_GUEST_MODE, action=exit_guest),
        # Sessão
        Transition(
            S.AUTHENTICATED,
            S.AUTHENTICATED,
            E.TOKEN_REFRESH,
            action=refresh_token,
            effect=persist,
        ),
        Transition(
            S.AUTHENTICATED,
            S.AUTHENTICATED,
            E.USER_ACTIVITY,
            action=record_activity,
            effect=persist,
        ),
        Transition(
            S.AUTHENTICATED,
            S.UNAUTHENTICATED,
            E.TOKEN_EXPIRED,
            action=expire_token,
            effect=clear,
        ),
        Transition(
            S.AUTHENTICATED,
            S.UNAUTHENTICATED,
            E.SESSION_TIMEOUT,
            action=time_out_session,
            effect=clear,
        ),
        Transition(
            S.UNAUTHENTICATED,
            S.AUTHENTICATED,
            E.SESSION_RESTORED,
            guard=rules.session_fresh,
            action=restore_session,
        ),
        # Bloqueio
        Transition(
            S.UNAUTHENTICATED,
            S.LOCKED,
            E.ACCOUNT_LOCKED,
            action=rules.lock_account,
        ),
        Transition(
            S.AUTHENTICATED,
            S.LOCKED,
            E.ACCOUNT_LOCKED,
            action=rules.lock_account,
            effect=clear,
        ),
        Transition(
            S.LOCKED,
            S.UNAUTHENTICATED,
            E.ACCOUNT_UNLOCKED,
            guard=lock_expired,
            action=unlock,
        ),
    ]
    return TransitionTable(AUTH_STATES, transitions)
