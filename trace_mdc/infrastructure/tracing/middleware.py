"""
Middleware para capturar/gerar trace id e abrir a unidade de trabalho no MDC.
"""
import time
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.types import ASGIApp

from trace_mdc.infrastructure.config.settings import Settings, get_settings
from trace_mdc.infrastructure.logging.structlog_config import get_logger
from trace_mdc.infrastructure.tracing.context import TRACE_ID_KEY, mdc_scope
from trace_mdc.infrastructure.tracing.generator import generate_trace_id

logger = get_logger("tracing.middleware")


class TraceMiddleware(BaseHTTPMiddleware):
    """
    Middleware que:
    1. Captura o trace id do header (X-Trace-ID) ou gera um novo
    2. Executa a request dentro de um escopo MDC com traceId
    3. Loga request received / response sent / request failed
    4. Devolve o trace id no header da resposta
    """

    def __init__(self, app: ASGIApp, settings: Optional[Settings] = None):
        super().__init__(app)
        self.settings = settings or get_settings()
        self.header_name = self.settings.trace_header_name
        self.excluded_paths = frozenset(self.settings.trace_excluded_paths)

    async def dispatch(self, request: Request, call_next):
        # Skip tracing para health checks (evita poluir logs)
        if request.url.path in self.excluded_paths:
            return await call_next(request)

        trace_id = request.headers.get(self.header_name) or generate_trace_id()

        with mdc_scope(**{TRACE_ID_KEY: trace_id}):
            start_time = time.time()
            logger.info(
                "request_received",
                path=str(request.url.path),
                method=request.method,
                ip=request.client.host if request.client else None,
                user_agent=request.headers.get("user-agent"),
            )

            try:
                response = await call_next(request)
            except Exception as e:
                logger.error(
                    "request_failed",
                    error_type=type(e).__name__,
                    error_message=str(e),
                    duration_ms=(time.time() - start_time) * 1000,
                )
                raise

            logger.info(
                "response_sent",
                status_code=response.status_code,
                duration_ms=(time.time() - start_time) * 1000,
            )
            response.headers[self.header_name] = trace_id
            return response
