"""Trace id + MDC (contexto ambiente) para correlacionar logs entre serviços."""
