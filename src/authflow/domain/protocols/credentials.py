"""Colaboradores externos de credenciais (validação de login e cadastro).

O engine não sabe como credenciais são validadas; a façade apenas aguarda
estes colaboradores e converte o resultado em eventos.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from authflow.domain.auth.context import AuthUser


@dataclass(frozen=True, slots=True)
class CredentialCheck:
    """Resultado de uma validação: usuário + token ou motivo da falha."""

    user: AuthUser | None = None
    token: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.user is not None and self.error is None

    @classmethod
    def success(cls, user: AuthUser, token: str | None = None) -> CredentialCheck:
        return cls(user=user, token=token)

    @classmethod
    def failure(cls, error: str) -> CredentialCheck:
        return cls(error=error)


class CredentialValidator(Protocol):
    """Valida e-mail + senha."""

    async def validate(self, email: str, password: str) -> CredentialCheck: ...


class AccountRegistrar(Protocol):
    """Cria conta a partir dos dados de cadastro."""

    async def register(self, data: Mapping[str, Any]) -> CredentialCheck: ...
