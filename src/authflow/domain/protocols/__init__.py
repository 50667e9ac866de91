"""Re-exports dos Protocolos de domínio para uso por Application."""

from __future__ import annotations

from authflow.domain.protocols.clock import Clock
from authflow.domain.protocols.credentials import (
    AccountRegistrar,
    CredentialCheck,
    CredentialValidator,
)
from authflow.domain.protocols.effects import AuthEffects
from authflow.domain.protocols.session_store import SessionStoreProtocol

__all__ = [
    "AccountRegistrar",
    "AuthEffects",
    "Clock",
    "CredentialCheck",
    "CredentialValidator",
    "SessionStoreProtocol",
]
