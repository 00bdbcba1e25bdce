"""
Gerador de trace id estruturado.

Formato: IP(8 hex) . timestamp ms . PID(5) + sequência(4)
Exemplo: ac13e001.1685348263825.095001000
"""
import re
import time
import uuid

from trace_mdc.infrastructure.logging.structlog_config import get_logger
from trace_mdc.infrastructure.tracing.identity import (
    convert_ip,
    get_process_id,
    resolve_local_ipv4,
)
from trace_mdc.infrastructure.tracing.sequence import sequence_counter

logger = get_logger("tracing.generator")

TRACE_ID_PATTERN = re.compile(r"^[0-9a-f]{8}\.\d+\.\d{9}$")
FALLBACK_TRACE_ID_PATTERN = re.compile(r"^[0-9a-f]{32}$")


def generate_uuid_trace_id() -> str:
    """Trace id opaco: UUID4 sem hífens (32 chars)."""
    return uuid.uuid4().hex


def generate_trace_id() -> str:
    """
    Gera trace id estruturado.

    Nunca lança exceção: qualquer falha interna (IP, PID, formatação) é
    logada e substituída por um UUID sem hífens.

    Returns:
        "<ip hex>.<epoch ms>.<pid><seq>" ou 32 chars hex no fallback
    """
    try:
        host = convert_ip(resolve_local_ipv4())
        timestamp = time.time_ns() // 1_000_000
        process_id = get_process_id()
        sequence = f"{sequence_counter.next():04d}"
        return f"{host}.{timestamp}.{process_id}{sequence}"
    except Exception as e:
        logger.error(
            "trace_id_generation_failed",
            error_type=type(e).__name__,
            error_message=str(e),
            exc_info=True,
        )
        return generate_uuid_trace_id()


def is_structured_trace_id(value: str) -> bool:
    """True se ``value`` tem o formato estruturado (e não o fallback opaco)."""
    return bool(TRACE_ID_PATTERN.match(value))
