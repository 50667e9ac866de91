"""Relógio de sistema (UTC)."""

from __future__ import annotations

from datetime import UTC, datetime


class SystemClock:
    """Implementa o protocolo Clock com o relógio do sistema."""

    def now(self) -> datetime:
        return datetime.now(tz=UTC)
