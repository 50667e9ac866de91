"""Sessão de autenticação (modelo persistido + effects de persistência)."""

from authflow.application.session.effects import SessionPersistenceEffects
from authflow.application.session.models import AuthSession

__all__ = ["AuthSession", "SessionPersistenceEffects"]
