"""Configurações da aplicação via variáveis de ambiente.

Todas as configurações são carregadas de env vars com prefixo AUTHFLOW_.
Nunca hardcode secrets ou valores sensíveis.
"""

from __future__ import annotations

from datetime import timedelta
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from authflow.domain.auth.policy import AuthPolicy


class Settings(BaseSettings):
    """Configurações lidas do ambiente."""

    model_config = SettingsConfigDict(
        env_prefix="AUTHFLOW_",
        case_sensitive=False,
    )

    # Aplicação
    service_name: str = "authflow"
    version: str = "0.1.0"
    environment: str = "development"
    log_level: str = "INFO"

    # Observabilidade
    log_format: str = "json"  # json | text

    # Lockout / sessão
    max_login_attempts: int = 5  # Falhas consecutivas antes do lock
    lockout_minutes: int = 15  # Duração do lock automático
    session_timeout_minutes: int = 30  # Timeout de inatividade
    session_check_interval_seconds: float = 60.0  # Período do SessionMonitor

    # Engine
    strict_transitions: bool = True  # Ambiguidade de guards vira erro

    # Persistência de sessão
    session_store_backend: str = "memory"  # memory | redis
    redis_url: str | None = None  # Para session_store_backend=redis
    session_key_prefix: str = "auth_session"
    session_ttl_seconds: int = 7200

    def auth_policy(self) -> AuthPolicy:
        """Monta a AuthPolicy usada pela tabela de transições."""
        return AuthPolicy(
            max_login_attempts=self.max_login_attempts,
            lockout=timedelta(minutes=self.lockout_minutes),
            session_timeout=timedelta(minutes=self.session_timeout_minutes),
        )

    def validate_session_store_config(self) -> list[str]:
        """Valida backend de sessão. Retorna lista de erros (vazia = OK)."""
        errors: list[str] = []
        backend = self.session_store_backend.lower()

        if backend not in {"memory", "redis"}:
            errors.append("SESSION_STORE_BACKEND inválido: use memory | redis")

        if backend == "memory" and (self.is_staging or self.is_production):
            errors.append(
                "SESSION_STORE_BACKEND=memory é proibido em staging/production. "
                "Configure Redis."
            )
        if backend == "redis" and not self.redis_url:
            errors.append("SESSION_STORE_BACKEND=redis requer REDIS_URL configurado")
        if self.session_ttl_seconds < self.session_timeout_minutes * 60:
            errors.append("SESSION_TTL_SECONDS deve cobrir SESSION_TIMEOUT_MINUTES")
        return errors

    def validate_auth_policy(self) -> list[str]:
        """Valida limites de lockout/timeout."""
        errors: list[str] = []
        if self.max_login_attempts < 1:
            errors.append("MAX_LOGIN_ATTEMPTS deve ser >= 1")
        if self.lockout_minutes < 1:
            errors.append("LOCKOUT_MINUTES deve ser >= 1")
        if self.session_timeout_minutes < 1:
            errors.append("SESSION_TIMEOUT_MINUTES deve ser >= 1")
        if self.session_check_interval_seconds <= 0:
            errors.append("SESSION_CHECK_INTERVAL_SECONDS deve ser positivo")
        return errors

    @property
    def is_production(self) -> bool:
        """Retorna True se ambiente é produção."""
        return self.environment.lower() in ("production", "prod")

    @property
    def is_staging(self) -> bool:
        """Retorna True se ambiente é staging."""
        return self.environment.lower() in ("staging", "stage")

    @property
    def is_development(self) -> bool:
        """Retorna True se ambiente é desenvolvimento."""
        return self.environment.lower() in ("development", "dev", "local")


@lru_cache
def get_settings() -> Settings:
    """Retorna instância cacheada de Settings."""
    return Settings()
