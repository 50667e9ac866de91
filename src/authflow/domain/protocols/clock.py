"""Protocolo de relógio injetável (tempo real ou fake em testes)."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol


class Clock(Protocol):
    """Fonte de "agora". Deve retornar datetime timezone-aware (UTC)."""

    def now(self) -> datetime: ...
