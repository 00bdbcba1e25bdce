"""Núcleo compartilhado: exceções."""
from trace_mdc.core.exceptions import (
    TraceContextException,
    IdentityResolutionError,
    BizCodeExpressionError,
)

__all__ = [
    "TraceContextException",
    "IdentityResolutionError",
    "BizCodeExpressionError",
]
