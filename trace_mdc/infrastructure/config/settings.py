"""
Configurações do subsistema de trace.
Carrega variáveis de ambiente e define configurações globais.
"""

import ipaddress
from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator


class Settings(BaseSettings):
    """Configurações da aplicação carregadas do ambiente."""

    # Aplicação
    app_name: str = "trace-mdc"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"
    environment: str = "development"

    # Trace
    trace_header_name: str = Field(
        default="X-Trace-ID",
        description="Header HTTP usado para propagar o trace id entre serviços"
    )
    trace_host_ip: Optional[str] = Field(
        default=None,
        description="IPv4 fixo do host (sobrescreve a detecção automática)"
    )
    trace_excluded_paths: list[str] = [
        "/health",
        "/api/health",
    ]

    # Tabela de registro do MDC (expressão bizCode por nome qualificado)
    mdc_biz_codes: dict[str, str] = {}  # "modulo.Tipo.metodo" -> expr
    mdc_type_biz_codes: dict[str, str] = {}  # "modulo.Tipo" -> expr

    @field_validator("trace_host_ip")
    @classmethod
    def validate_trace_host_ip(cls, value: Optional[str]) -> Optional[str]:
        """Override de IP precisa ser um IPv4 válido (falha no startup)."""
        if value is None or not value.strip():
            return None
        try:
            return str(ipaddress.IPv4Address(value.strip()))
        except ValueError as e:
            raise ValueError(f"trace_host_ip inválido: {value!r}") from e

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """
    Retorna instância cacheada das configurações.
    Use esta função para obter as configurações em qualquer lugar da aplicação.
    """
    return Settings()


# Instância global para imports diretos
settings = get_settings()
