"""AuthStateMachine: façade do ciclo de autenticação sobre o engine FSM.

Responsabilidades:
- Montar a tabela de autenticação com política e effects injetados
- Expor operações de domínio (login, logout, cadastro, convidado, lock...)
- Converter resultados de colaboradores externos em eventos
- Consultas derivadas (sessão válida, tempo até desbloqueio)

Uma instância por sessão de usuário; nada de singleton global.
Senhas nunca entram no payload dos eventos (o histórico guarda eventos).
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import Any

import anyio

from authflow.application.fsm_engine import EffectErrorSink, StateMachine, TransitionResult
from authflow.application.session import AuthSession, SessionPersistenceEffects
from authflow.config.settings import Settings, get_settings
from authflow.domain.auth import (
    AuthContext,
    AuthEvent,
    AuthPolicy,
    AuthState,
    AuthUser,
    build_auth_transition_table,
    initial_auth_context,
)
from authflow.domain.fsm import Event, HistoryEntry, State, Transition
from authflow.domain.protocols import (
    AccountRegistrar,
    Clock,
    CredentialCheck,
    CredentialValidator,
    SessionStoreProtocol,
)
from authflow.infra.clock import SystemClock
from authflow.infra.session_store_factory import create_session_store
from authflow.observability.logging import get_logger, mask_identifier

logger: logging.Logger = get_logger(__name__)

SERVICE_UNAVAILABLE_MESSAGE = "Authentication service unavailable"


class AuthStateMachine:
    """Máquina de autenticação com operações nomeadas pelo domínio."""

    def __init__(
        self,
        *,
        store: SessionStoreProtocol | None = None,
        clock: Clock | None = None,
        policy: AuthPolicy | None = None,
        validator: CredentialValidator | None = None,
        registrar: AccountRegistrar | None = None,
        initial_context: Mapping[str, Any] | None = None,
        session_id: str | None = None,
        strict: bool | None = None,
        on_effect_error: EffectErrorSink | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._clock = clock or SystemClock()
        self._policy = policy or self._settings.auth_policy()
        self._session_id = session_id or uuid.uuid4().hex
        self._store = store or create_session_store(
            self._settings, session_key=self._session_id, clock=self._clock
        )
        self._validator = validator
        self._registrar = registrar

        self._effects = SessionPersistenceEffects(self._store, self._session_id)
        table = build_auth_transition_table(self._policy, self._effects)

        self._machine = StateMachine(
            table,
            AuthState.UNAUTHENTICATED,
            initial_auth_context(**dict(initial_context or {})),
            clock=self._clock,
            strict=self._settings.strict_transitions if strict is None else strict,
            on_effect_error=on_effect_error,
            name="auth",
        )

    # ------------------------------------------------------------------
    # Leituras
    # ------------------------------------------------------------------

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def policy(self) -> AuthPolicy:
        return self._policy

    @property
    def store(self) -> SessionStoreProtocol:
        return self._store

    @property
    def engine(self) -> StateMachine:
        return self._machine

    @property
    def current_state(self) -> State:
        return self._machine.current_state

    @property
    def state(self) -> AuthState:
        return AuthState(self._machine.current_state.name)

    @property
    def context(self) -> dict[str, Any]:
        return self._machine.context

    def auth_context(self) -> AuthContext:
        """Visão tipada do contexto corrente."""
        return AuthContext.from_mapping(self._machine.context)

    @property
    def history(self) -> tuple[HistoryEntry, ...]:
        return self._machine.history

    @property
    def is_authenticated(self) -> bool:
        return self.state is AuthState.AUTHENTICATED

    @property
    def is_guest(self) -> bool:
        return self.state is AuthState.GUEST or self.context.get("is_guest") is True

    @property
    def is_locked(self) -> bool:
        return self.state is AuthState.LOCKED

    @property
    def user(self) -> AuthUser | None:
        return self.auth_context().user

    @property
    def error(self) -> str | None:
        return self.context.get("error")

    def is_session_valid(self) -> bool:
        """Sessão válida sse now - last_activity < session_timeout."""
        last_activity: datetime | None = self.context.get("last_activity")
        if last_activity is None:
            return False
        return self._clock.now() - last_activity < self._policy.session_timeout

    def time_until_unlock(self) -> timedelta | None:
        """Tempo restante de bloqueio (negativo se já venceu; None sem lock)."""
        lock_until: datetime | None = self.context.get("lock_until")
        if lock_until is None:
            return None
        return lock_until - self._clock.now()

    def can_transition(self, event: Event | str, payload: Mapping[str, Any] | None = None) -> bool:
        return self._machine.can_transition(event, payload)

    def possible_transitions(self) -> list[Transition]:
        return self._machine.possible_transitions()

    def to_diagnostics(self) -> dict[str, Any]:
        return self._machine.to_diagnostics()

    def to_graph(self, fmt: str = "dot") -> str:
        return self._machine.to_graph(fmt)

    # ------------------------------------------------------------------
    # Operações
    # ------------------------------------------------------------------

    async def transition(
        self, event: Event | str, payload: Mapping[str, Any] | None = None
    ) -> TransitionResult:
        return await self._machine.transition(event, payload)

    def reset(self) -> None:
        self._machine.reset()

    async def drain_effects(self) -> None:
        await self._machine.drain_effects()

    async def login(self, email: str, password: str) -> TransitionResult:
        """LOGIN_REQUEST e, com validator injetado, LOGIN_SUCCESS/LOGIN_FAILURE."""
        result = await self.transition(AuthEvent.LOGIN_REQUEST, {"email": email})
        if not result.success or self._validator is None:
            return result

        try:
            check = await self._validator.validate(email, password)
        except Exception as exc:
            logger.warning(
                "Credential validator failed",
                extra={"user": mask_identifier(email), "error_type": type(exc).__name__},
            )
            check = CredentialCheck.failure(SERVICE_UNAVAILABLE_MESSAGE)

        return await self._complete(check, AuthEvent.LOGIN_SUCCESS, AuthEvent.LOGIN_FAILURE)

    async def register(self, data: Mapping[str, Any]) -> TransitionResult:
        """REGISTER_REQUEST e, com registrar injetado, REGISTER_SUCCESS/REGISTER_FAILURE."""
        result = await self.transition(AuthEvent.REGISTER_REQUEST, {"email": data.get("email")})
        if not result.success or self._registrar is None:
            return result

        try:
            check = await self._registrar.register(data)
        except Exception as exc:
            logger.warning(
                "Account registrar failed",
                extra={
                    "user": mask_identifier(data.get("email")),
                    "error_type": type(exc).__name__,
                },
            )
            check = CredentialCheck.failure(SERVICE_UNAVAILABLE_MESSAGE)

        return await self._complete(check, AuthEvent.REGISTER_SUCCESS, AuthEvent.REGISTER_FAILURE)

    async def complete_login(self, user: AuthUser, token: str | None = None) -> TransitionResult:
        return await self.transition(AuthEvent.LOGIN_SUCCESS, {"user": user, "token": token})

    async def fail_login(self, error: str | None = None) -> TransitionResult:
        return await self.transition(AuthEvent.LOGIN_FAILURE, {"error": error})

    async def logout(self) -> TransitionResult:
        """Logout em duas fases: authenticated -> logging_out -> unauthenticated."""
        started = await self.transition(AuthEvent.LOGOUT)
        if not started.success:
            return started
        finished = await self.transition(AuthEvent.LOGOUT)
        return TransitionResult(
            success=finished.success,
            from_state=started.from_state,
            to_state=finished.to_state,
            error=finished.error,
            effect=finished.effect,
        )

    async def enter_guest_mode(self) -> TransitionResult:
        return await self.transition(AuthEvent.ENTER_GUEST_MODE)

    async def exit_guest_mode(self) -> TransitionResult:
        return await self.transition(AuthEvent.EXIT_GUEST_MODE)

    async def refresh_token(self, token: str) -> TransitionResult:
        return await self.transition(AuthEvent.TOKEN_REFRESH, {"token": token})

    async def expire_token(self) -> TransitionResult:
        return await self.transition(AuthEvent.TOKEN_EXPIRED)

    async def record_activity(self) -> TransitionResult:
        return await self.transition(AuthEvent.USER_ACTIVITY)

    async def lock(
        self, reason: str | None = None, duration: timedelta | None = None
    ) -> TransitionResult:
        """Bloqueio administrativo (duração padrão = policy.lockout)."""
        payload: dict[str, Any] = {"reason": reason}
        if duration is not None:
            payload["lock_until"] = self._clock.now() + duration
        return await self.transition(AuthEvent.ACCOUNT_LOCKED, payload)

    async def unlock(self) -> TransitionResult:
        """Só passa se lock_until ausente ou vencido (guard da tabela)."""
        return await self.transition(AuthEvent.ACCOUNT_UNLOCKED)

    async def restore_session(self) -> TransitionResult | None:
        """Recarrega sessão persistida; se estiver velha, limpa o store.

        Só se aplica a partir de `unauthenticated`; em outro estado devolve a
        rejeição sem tocar no store. Retorna None quando não há sessão persistida.
        """
        if self.state is not AuthState.UNAUTHENTICATED:
            return await self.transition(AuthEvent.SESSION_RESTORED)

        session: AuthSession | None = await anyio.to_thread.run_sync(self._store.load)
        if session is None:
            return None

        result = await self.transition(AuthEvent.SESSION_RESTORED, session.to_event_payload())
        if result.success:
            self._effects.adopt(session)
        else:
            await anyio.to_thread.run_sync(self._store.clear)
            logger.info(
                "Stale session discarded",
                extra={
                    "session_id": mask_identifier(session.session_id, 8),
                    "reason": result.error,
                },
            )
        return result

    async def _complete(
        self, check: CredentialCheck, success: AuthEvent, failure: AuthEvent
    ) -> TransitionResult:
        if check.ok:
            return await self.transition(success, {"user": check.user, "token": check.token})
        return await self.transition(failure, {"error": check.error})
