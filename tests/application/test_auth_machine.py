"""Testes da AuthStateMachine (domínio de autenticação).

Cobertura:
- Lockout após N falhas e desbloqueio só após lock_until
- Fluxos com validator/registrar injetados
- Convidado, logout em duas fases, timeout, refresh
- Persistência/restauração de sessão via store
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from authflow.application.auth_machine import SERVICE_UNAVAILABLE_MESSAGE, AuthStateMachine
from authflow.application.session import AuthSession
from authflow.domain.auth import AuthEvent, AuthState
from authflow.domain.auth.transitions import (
    LOCKED_MESSAGE,
    LOGIN_FAILED_MESSAGE,
    SESSION_TIMEOUT_MESSAGE,
    TOKEN_EXPIRED_MESSAGE,
)
from tests.helpers.fakes import (
    ExplodingCredentialValidator,
    FailingSessionStore,
    FakeAccountRegistrar,
    FakeClock,
    FakeCredentialValidator,
    RecordingSessionStore,
    SlowSessionStore,
    make_user,
)


async def _fail_login(auth: AuthStateMachine, times: int) -> None:
    for _ in range(times):
        await auth.login("ana@example.com", "wrong")
        await auth.fail_login()


async def _authenticate(auth: AuthStateMachine, token: str = "tok-1") -> None:
    await auth.login("ana@example.com", "s3cret")
    await auth.complete_login(make_user(), token)
    await auth.drain_effects()


class TestInitialState:
    def test_starts_unauthenticated_with_empty_context(self, auth: AuthStateMachine) -> None:
        ctx = auth.auth_context()

        assert auth.state is AuthState.UNAUTHENTICATED
        assert ctx.attempts == 0
        assert ctx.is_guest is False
        assert ctx.user is None
        assert auth.history == ()
        assert auth.is_session_valid() is False
        assert auth.time_until_unlock() is None

    def test_policy_comes_from_settings(self, auth: AuthStateMachine) -> None:
        assert auth.policy.max_login_attempts == 5
        assert auth.policy.lockout == timedelta(minutes=15)


class TestLockout:
    @pytest.mark.asyncio
    async def test_failures_below_threshold_go_to_error(self, auth: AuthStateMachine) -> None:
        await _fail_login(auth, 4)

        assert auth.state is AuthState.ERROR
        assert auth.context["attempts"] == 4
        assert auth.error == LOGIN_FAILED_MESSAGE
        assert auth.context["lock_until"] is None

    @pytest.mark.asyncio
    async def test_fifth_failure_locks_account(
        self, auth: AuthStateMachine, clock: FakeClock
    ) -> None:
        await _fail_login(auth, 5)

        ctx = auth.auth_context()
        assert auth.state is AuthState.LOCKED
        assert ctx.attempts == 5
        assert ctx.lock_until == clock.now() + timedelta(minutes=15)
        assert ctx.error == LOCKED_MESSAGE
        assert ctx.user is None
        assert ctx.user_name is None

    @pytest.mark.asyncio
    async def test_locked_rejects_login(self, auth: AuthStateMachine) -> None:
        await _fail_login(auth, 5)

        result = await auth.login("ana@example.com", "s3cret")

        assert result.success is False
        assert auth.state is AuthState.LOCKED

    @pytest.mark.asyncio
    async def test_unlock_blocked_until_lock_expires(
        self, auth: AuthStateMachine, clock: FakeClock
    ) -> None:
        await _fail_login(auth, 5)

        clock.advance(minutes=14, seconds=59)
        early = await auth.unlock()
        assert early.success is False
        assert "guard blocked" in early.error
        assert auth.state is AuthState.LOCKED

        clock.advance(seconds=1)
        late = await auth.unlock()
        assert late.success is True
        assert auth.state is AuthState.UNAUTHENTICATED
        assert auth.context["attempts"] == 0
        assert auth.context["lock_until"] is None
        assert auth.error is None

    @pytest.mark.asyncio
    async def test_lockout_and_recovery_walkthrough(
        self, auth: AuthStateMachine, clock: FakeClock
    ) -> None:
        """4 falhas -> error; 5ª -> locked; unlock só após 16 min."""
        await _fail_login(auth, 4)
        assert auth.state is AuthState.ERROR
        assert auth.context["attempts"] == 4

        await auth.transition(AuthEvent.LOGIN_REQUEST, {"email": "ana@example.com"})
        await auth.transition(AuthEvent.LOGIN_FAILURE)
        assert auth.state is AuthState.LOCKED
        assert auth.context["attempts"] == 5
        assert auth.context["lock_until"] == clock.now() + timedelta(minutes=15)

        immediate = await auth.transition(AuthEvent.ACCOUNT_UNLOCKED)
        assert immediate.success is False

        clock.advance(minutes=16)
        released = await auth.transition(AuthEvent.ACCOUNT_UNLOCKED)
        assert released.success is True
        assert auth.state is AuthState.UNAUTHENTICATED
        assert auth.context["attempts"] == 0

    @pytest.mark.asyncio
    async def test_time_until_unlock_counts_down(
        self, auth: AuthStateMachine, clock: FakeClock
    ) -> None:
        await _fail_login(auth, 5)

        assert auth.time_until_unlock() == timedelta(minutes=15)
        clock.advance(minutes=10)
        assert auth.time_until_unlock() == timedelta(minutes=5)
        clock.advance(minutes=6)
        assert auth.time_until_unlock() == timedelta(minutes=-1)

    @pytest.mark.asyncio
    async def test_success_resets_attempts(self, auth: AuthStateMachine) -> None:
        await _fail_login(auth, 3)
        await _authenticate(auth)

        assert auth.context["attempts"] == 0
        assert auth.error is None

    @pytest.mark.asyncio
    async def test_custom_policy_threshold(self, clock: FakeClock, settings) -> None:
        settings.max_login_attempts = 2
        auth = AuthStateMachine(store=RecordingSessionStore(), clock=clock, settings=settings)

        await _fail_login(auth, 2)

        assert auth.state is AuthState.LOCKED


class TestLoginFlow:
    @pytest.mark.asyncio
    async def test_login_scenario_end_to_end(
        self, auth: AuthStateMachine, store: RecordingSessionStore
    ) -> None:
        await auth.login("ana@example.com", "irrelevant")
        assert auth.state is AuthState.AUTHENTICATING
        assert auth.context["user_name"] == "ana@example.com"

        await auth.fail_login("Invalid credentials")
        assert auth.state is AuthState.ERROR
        assert auth.context["attempts"] == 1

        await auth.login("ana@example.com", "irrelevant")
        result = await auth.complete_login(make_user(), "tok-1")
        await auth.drain_effects()

        assert result.success is True
        assert auth.is_authenticated is True
        assert auth.user == make_user()
        assert auth.context["token"] == "tok-1"
        assert auth.context["attempts"] == 0
        assert auth.is_session_valid() is True
        assert [e.target for e in auth.history] == [
            "authenticating",
            "error",
            "authenticating",
            "authenticated",
        ]
        assert len(store.saved) == 1
        assert store.saved[0].session_id == "sess-0001"
        assert store.saved[0].token == "tok-1"

    @pytest.mark.asyncio
    async def test_validator_success(self, clock: FakeClock, settings, store) -> None:
        validator = FakeCredentialValidator()
        auth = AuthStateMachine(store=store, clock=clock, settings=settings, validator=validator)

        result = await auth.login("ana@example.com", "s3cret")
        await auth.drain_effects()

        assert result.success is True
        assert result.to_state == "authenticated"
        assert auth.context["token"] == "tok-123"
        assert validator.calls == ["ana@example.com"]
        assert store.session is not None

    @pytest.mark.asyncio
    async def test_validator_failure_never_records_password(
        self, clock: FakeClock, settings, store
    ) -> None:
        auth = AuthStateMachine(
            store=store, clock=clock, settings=settings, validator=FakeCredentialValidator()
        )

        await auth.login("ana@example.com", "hunter2")

        assert auth.state is AuthState.ERROR
        assert auth.error == "Invalid credentials"
        for entry in auth.history:
            assert "password" not in entry.event.payload
            assert "hunter2" not in entry.event.payload.values()

    @pytest.mark.asyncio
    async def test_validator_exception_becomes_failure(
        self, clock: FakeClock, settings, store
    ) -> None:
        auth = AuthStateMachine(
            store=store,
            clock=clock,
            settings=settings,
            validator=ExplodingCredentialValidator(),
        )

        result = await auth.login("ana@example.com", "s3cret")

        assert result.success is True
        assert auth.state is AuthState.ERROR
        assert auth.error == SERVICE_UNAVAILABLE_MESSAGE
        assert auth.context["attempts"] == 1

    @pytest.mark.asyncio
    async def test_login_success_outside_authenticating_is_rejected(
        self, auth: AuthStateMachine
    ) -> None:
        result = await auth.complete_login(make_user(), "tok")

        assert result.success is False
        assert "No transition" in result.error
        assert auth.state is AuthState.UNAUTHENTICATED


class TestRegistration:
    @pytest.mark.asyncio
    async def test_register_success(self, clock: FakeClock, settings, store) -> None:
        auth = AuthStateMachine(
            store=store, clock=clock, settings=settings, registrar=FakeAccountRegistrar()
        )

        result = await auth.register({"email": "bia@example.com", "password": "x"})
        await auth.drain_effects()

        assert result.to_state == "authenticated"
        assert auth.user.email == "bia@example.com"
        assert auth.context["token"] == "tok-new"
        assert len(store.saved) == 1

    @pytest.mark.asyncio
    async def test_register_failure_goes_to_error(self, clock: FakeClock, settings, store) -> None:
        auth = AuthStateMachine(
            store=store,
            clock=clock,
            settings=settings,
            registrar=FakeAccountRegistrar(taken={"bia@example.com"}),
        )

        await auth.register({"email": "bia@example.com", "password": "x"})

        assert auth.state is AuthState.ERROR
        assert auth.error == "Email already registered"
        assert auth.context["attempts"] == 0

    @pytest.mark.asyncio
    async def test_register_without_registrar_waits_in_registering(
        self, auth: AuthStateMachine
    ) -> None:
        await auth.register({"email": "bia@example.com"})

        assert auth.state is AuthState.REGISTERING
        result = await auth.transition(AuthEvent.REGISTER_FAILURE)
        assert result.success is True
        assert auth.error == "Registration failed"


class TestGuestMode:
    @pytest.mark.asyncio
    async def test_enter_and_exit(self, auth: AuthStateMachine) -> None:
        await auth.enter_guest_mode()
        assert auth.state is AuthState.GUEST
        assert auth.is_guest is True

        await auth.exit_guest_mode()
        assert auth.state is AuthState.UNAUTHENTICATED
        assert auth.is_guest is False

    @pytest.mark.asyncio
    async def test_guest_can_start_login(self, auth: AuthStateMachine) -> None:
        await auth.enter_guest_mode()

        await auth.login("ana@example.com", "s3cret")

        assert auth.state is AuthState.AUTHENTICATING
        assert auth.context["is_guest"] is False

    @pytest.mark.asyncio
    async def test_guest_cannot_logout(self, auth: AuthStateMachine) -> None:
        await auth.enter_guest_mode()

        result = await auth.logout()

        assert result.success is False
        assert auth.state is AuthState.GUEST


class TestSessionLifecycle:
    @pytest.mark.asyncio
    async def test_logout_clears_identity_and_store(
        self, auth: AuthStateMachine, store: RecordingSessionStore
    ) -> None:
        await _authenticate(auth)

        result = await auth.logout()
        await auth.drain_effects()

        assert result.success is True
        assert result.from_state == "authenticated"
        assert result.to_state == "unauthenticated"
        assert auth.user is None
        assert auth.context["token"] is None
        assert [e.target for e in auth.history][-2:] == ["logging_out", "unauthenticated"]
        assert store.clear_calls == 1
        assert store.session is None

    @pytest.mark.asyncio
    async def test_token_refresh_updates_token_and_activity(
        self, auth: AuthStateMachine, clock: FakeClock, store: RecordingSessionStore
    ) -> None:
        await _authenticate(auth)
        clock.advance(minutes=20)

        result = await auth.refresh_token("tok-2")
        await auth.drain_effects()

        assert result.success is True
        assert auth.state is AuthState.AUTHENTICATED
        assert auth.context["token"] == "tok-2"
        assert auth.context["last_activity"] == clock.now()
        assert store.session.token == "tok-2"

    @pytest.mark.asyncio
    async def test_refresh_without_token_fails_atomically(self, auth: AuthStateMachine) -> None:
        await _authenticate(auth)
        history_length = len(auth.history)

        result = await auth.refresh_token("")

        assert result.success is False
        assert result.error == "TOKEN_REFRESH requires a token"
        assert auth.context["token"] == "tok-1"
        assert len(auth.history) == history_length

    @pytest.mark.asyncio
    async def test_activity_keeps_session_valid(
        self, auth: AuthStateMachine, clock: FakeClock
    ) -> None:
        await _authenticate(auth)

        clock.advance(minutes=25)
        await auth.record_activity()
        clock.advance(minutes=25)

        assert auth.is_session_valid() is True
        clock.advance(minutes=5)
        assert auth.is_session_valid() is False

    @pytest.mark.asyncio
    async def test_token_expired(self, auth: AuthStateMachine, store) -> None:
        await _authenticate(auth)

        await auth.expire_token()
        await auth.drain_effects()

        assert auth.state is AuthState.UNAUTHENTICATED
        assert auth.error == TOKEN_EXPIRED_MESSAGE
        assert store.session is None

    @pytest.mark.asyncio
    async def test_session_timeout_event(self, auth: AuthStateMachine) -> None:
        await _authenticate(auth)

        await auth.transition(AuthEvent.SESSION_TIMEOUT)
        await auth.drain_effects()

        assert auth.state is AuthState.UNAUTHENTICATED
        assert auth.error == SESSION_TIMEOUT_MESSAGE
        assert auth.user is None

    @pytest.mark.asyncio
    async def test_persist_failure_keeps_state(self, clock: FakeClock, settings) -> None:
        failures = []
        auth = AuthStateMachine(
            store=FailingSessionStore(),
            clock=clock,
            settings=settings,
            on_effect_error=lambda exc, entry: failures.append((type(exc).__name__, entry.target)),
        )

        await auth.login("ana@example.com", "s3cret")
        result = await auth.complete_login(make_user(), "tok")
        await auth.drain_effects()

        assert result.success is True
        assert auth.is_authenticated is True
        assert failures == [("SessionStoreError", "authenticated")]


class TestRestoreSession:
    @pytest.mark.asyncio
    async def test_nothing_stored(self, auth: AuthStateMachine) -> None:
        assert await auth.restore_session() is None
        assert auth.state is AuthState.UNAUTHENTICATED

    @pytest.mark.asyncio
    async def test_fresh_session_is_restored(self, clock: FakeClock, settings) -> None:
        stored = AuthSession(
            session_id="sess-0001",
            user=make_user(),
            token="tok-old",
            last_activity=clock.now() - timedelta(minutes=5),
            created_at=clock.now() - timedelta(hours=1),
        )
        store = RecordingSessionStore(stored)
        auth = AuthStateMachine(store=store, clock=clock, settings=settings)

        result = await auth.restore_session()

        assert result.success is True
        assert auth.is_authenticated is True
        assert auth.user == make_user()
        assert auth.context["token"] == "tok-old"
        assert store.clear_calls == 0

    @pytest.mark.asyncio
    async def test_stale_session_is_discarded(self, clock: FakeClock, settings) -> None:
        stored = AuthSession(
            user=make_user(),
            token="tok-old",
            last_activity=clock.now() - timedelta(minutes=45),
            created_at=clock.now() - timedelta(hours=1),
        )
        store = RecordingSessionStore(stored)
        auth = AuthStateMachine(store=store, clock=clock, settings=settings)

        result = await auth.restore_session()

        assert result.success is False
        assert auth.state is AuthState.UNAUTHENTICATED
        assert store.clear_calls == 1
        assert store.session is None


    @pytest.mark.asyncio
    async def test_restored_session_keeps_real_last_activity(
        self, clock: FakeClock, settings
    ) -> None:
        """Sessão ociosa há 29 min não ganha nova janela de 30 min ao restaurar."""
        last_activity = clock.now() - timedelta(minutes=29)
        stored = AuthSession(
            user=make_user(),
            token="tok-old",
            last_activity=last_activity,
            created_at=clock.now() - timedelta(hours=1),
        )
        auth = AuthStateMachine(store=RecordingSessionStore(stored), clock=clock, settings=settings)

        result = await auth.restore_session()

        assert result.success is True
        assert auth.context["last_activity"] == last_activity
        clock.advance(minutes=5)
        assert auth.is_session_valid() is False

    @pytest.mark.asyncio
    async def test_restore_outside_unauthenticated_keeps_store(
        self, auth: AuthStateMachine, store: RecordingSessionStore
    ) -> None:
        await _authenticate(auth)

        result = await auth.restore_session()

        assert result.success is False
        assert "No transition" in result.error
        assert auth.is_authenticated is True
        assert store.session is not None
        assert store.clear_calls == 0

    @pytest.mark.asyncio
    async def test_restored_session_keeps_created_at(self, clock: FakeClock, settings) -> None:
        created_at = clock.now() - timedelta(hours=1)
        stored = AuthSession(
            user=make_user(),
            token="tok-old",
            last_activity=clock.now() - timedelta(minutes=1),
            created_at=created_at,
        )
        store = RecordingSessionStore(stored)
        auth = AuthStateMachine(store=store, clock=clock, settings=settings)

        await auth.restore_session()
        await auth.record_activity()
        await auth.drain_effects()

        assert store.session.created_at == created_at
        assert store.session.last_activity == clock.now()


class TestPersistenceOrdering:
    @pytest.mark.asyncio
    async def test_persisted_session_carries_clock_times(
        self, auth: AuthStateMachine, clock: FakeClock, store: RecordingSessionStore
    ) -> None:
        started = clock.now()
        await _authenticate(auth)

        clock.advance(minutes=10)
        await auth.record_activity()
        await auth.drain_effects()

        assert [s.created_at for s in store.saved] == [started, started]
        assert store.saved[-1].last_activity == clock.now()

    @pytest.mark.asyncio
    async def test_slow_save_does_not_resurrect_session_after_logout(
        self, clock: FakeClock, settings
    ) -> None:
        store = SlowSessionStore(save_delay=0.1)
        auth = AuthStateMachine(store=store, clock=clock, settings=settings)

        await auth.login("ana@example.com", "s3cret")
        await auth.complete_login(make_user(), "tok")
        await auth.logout()
        await auth.drain_effects()

        assert auth.state is AuthState.UNAUTHENTICATED
        assert store.session is None

        fresh = AuthStateMachine(store=store, clock=clock, settings=settings)
        assert await fresh.restore_session() is None
        assert fresh.state is AuthState.UNAUTHENTICATED

    @pytest.mark.asyncio
    async def test_slow_clear_does_not_wipe_next_login(self, clock: FakeClock, settings) -> None:
        store = SlowSessionStore(clear_delay=0.1)
        auth = AuthStateMachine(store=store, clock=clock, settings=settings)
        await _authenticate(auth)

        await auth.logout()
        await auth.login("ana@example.com", "s3cret")
        await auth.complete_login(make_user(), "tok-2")
        await auth.drain_effects()

        assert auth.is_authenticated is True
        assert store.session is not None
        assert store.session.token == "tok-2"


class TestAdministrativeLock:
    @pytest.mark.asyncio
    async def test_lock_from_authenticated_clears_session(
        self, auth: AuthStateMachine, clock: FakeClock, store: RecordingSessionStore
    ) -> None:
        await _authenticate(auth)

        result = await auth.lock(reason="Suspicious activity", duration=timedelta(hours=1))
        await auth.drain_effects()

        assert result.success is True
        assert auth.is_locked is True
        assert auth.error == "Suspicious activity"
        assert auth.user is None
        assert auth.time_until_unlock() == timedelta(hours=1)
        assert store.session is None

    @pytest.mark.asyncio
    async def test_lock_uses_policy_duration_by_default(
        self, auth: AuthStateMachine, clock: FakeClock
    ) -> None:
        await auth.lock()

        assert auth.error == "Account locked"
        assert auth.context["lock_until"] == clock.now() + timedelta(minutes=15)


class TestDiagnostics:
    @pytest.mark.asyncio
    async def test_diagnostics_redact_token(self, auth: AuthStateMachine) -> None:
        await _authenticate(auth, token="very-secret")

        snap = auth.to_diagnostics()

        assert snap["machine"] == "auth"
        assert snap["current_state"] == "authenticated"
        assert snap["context"]["token"] == "***"
        assert snap["context"]["user"]["email"] == "ana@..."
        assert snap["context"]["user"]["id"] == "user-ana"
        assert snap["context"]["user_name"] == "ana@..."
        assert "LOGOUT" in snap["possible_transitions"]
        assert len(snap["history"]) == 2

    def test_graph_highlights_current_state(self, auth: AuthStateMachine) -> None:
        dot = auth.to_graph()

        assert '"unauthenticated" [shape=circle, style=filled, fillcolor="lightblue"];' in dot
        assert "LOGIN_FAILURE [guarded]" in dot

    def test_reset_returns_to_unauthenticated(self, auth: AuthStateMachine) -> None:
        auth.reset()
        assert auth.state is AuthState.UNAUTHENTICATED
        assert auth.context["attempts"] == 0
