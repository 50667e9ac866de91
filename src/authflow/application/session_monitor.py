"""SessionMonitor: timer externo que injeta eventos de tempo na máquina.

O engine não tem relógio nem timers: este colaborador verifica periodicamente
a validade da sessão e o vencimento do lock e dispara os eventos.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import timedelta

from authflow.application.auth_machine import AuthStateMachine
from authflow.application.fsm_engine import TransitionResult
from authflow.config.settings import Settings, get_settings
from authflow.domain.auth import AuthEvent
from authflow.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)


class SessionMonitor:
    """Dispara SESSION_TIMEOUT e ACCOUNT_UNLOCKED quando o tempo permite."""

    def __init__(
        self,
        machine: AuthStateMachine,
        interval_seconds: float = 60.0,
        auto_unlock: bool = True,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds deve ser positivo")
        self._machine = machine
        self._interval = interval_seconds
        self._auto_unlock = auto_unlock
        self._task: asyncio.Task[None] | None = None

    @classmethod
    def from_settings(
        cls, machine: AuthStateMachine, settings: Settings | None = None
    ) -> SessionMonitor:
        """Monitor com o intervalo de `session_check_interval_seconds`."""
        settings = settings or get_settings()
        return cls(machine, interval_seconds=settings.session_check_interval_seconds)

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def check_once(self) -> TransitionResult | None:
        """Uma verificação. Retorna o resultado da transição disparada (ou None)."""
        machine = self._machine

        if machine.is_authenticated and not machine.is_session_valid():
            logger.info("Session timeout detected", extra={"machine": machine.engine.name})
            return await machine.transition(AuthEvent.SESSION_TIMEOUT)

        if self._auto_unlock and machine.is_locked:
            remaining = machine.time_until_unlock()
            if remaining is None or remaining <= timedelta(0):
                logger.info("Lock expired", extra={"machine": machine.engine.name})
                return await machine.unlock()

        return None

    def start(self) -> None:
        """Inicia o loop periódico no event loop corrente."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="authflow-session-monitor")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.check_once()
            except Exception:
                logger.exception("Session monitor check failed")
