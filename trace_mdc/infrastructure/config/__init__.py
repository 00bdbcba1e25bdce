"""Configurações carregadas do ambiente."""
from trace_mdc.infrastructure.config.settings import Settings, get_settings, settings

__all__ = ["Settings", "get_settings", "settings"]
