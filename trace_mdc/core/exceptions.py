"""
Exceções customizadas do subsistema de trace.
"""

from typing import Any, Optional


class TraceContextException(Exception):
    """Exceção base para erros de trace/MDC."""

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None
    ):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class IdentityResolutionError(TraceContextException):
    """Falha ao resolver identidade do host (IPv4) ou do processo (PID)."""

    def __init__(self, source: str, error: str):
        super().__init__(
            message=f"Não foi possível resolver {source}: {error}",
            details={"source": source, "error": error}
        )


class BizCodeExpressionError(TraceContextException):
    """Expressão bizCode malformada ou que referencia variável inexistente."""

    def __init__(self, expression: str, error: str):
        super().__init__(
            message=f"Erro ao avaliar bizCode '{expression}': {error}",
            details={"expression": expression, "error": error}
        )
