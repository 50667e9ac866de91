"""Domínio de autenticação: estados, eventos, contexto e tabela.

Exporta:
- AuthState: 8 estados (nenhum terminal)
- AuthEvent: eventos do ciclo de autenticação
- AuthContext / AuthUser: visão tipada do contexto
- AuthPolicy: limites de lockout e timeout
- build_auth_transition_table: tabela declarativa
"""

from authflow.domain.auth.context import (
    AuthContext,
    AuthUser,
    initial_auth_context,
)
from authflow.domain.auth.events import AuthEvent
from authflow.domain.auth.policy import AuthPolicy
from authflow.domain.auth.states import AUTH_STATES, AuthState
from authflow.domain.auth.transitions import build_auth_transition_table

__all__ = [
    "AUTH_STATES",
    "AuthContext",
    "AuthEvent",
    "AuthPolicy",
    "AuthState",
    "AuthUser",
    "build_auth_transition_table",
    "initial_auth_context",
]
