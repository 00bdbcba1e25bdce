"""Trace id estruturado, MDC por unidade de trabalho e interceptação bizCode."""
from .generator import (
    generate_trace_id,
    generate_uuid_trace_id,
    is_structured_trace_id,
    TRACE_ID_PATTERN,
    FALLBACK_TRACE_ID_PATTERN,
)
from .sequence import SequenceCounter, sequence_counter
from .identity import convert_ip, get_process_id, resolve_local_ipv4, reset_identity_cache
from .context import (
    TRACE_ID_KEY,
    BIZ_CODE_KEY,
    add,
    remove,
    reset,
    get,
    get_context,
    get_trace_id,
    add_trace_id,
    get_biz_code,
    mdc_scope,
    add_mdc_context,
)
from .expression import evaluate_biz_code
from .registry import MdcDot, MdcRegistry, mdc_registry
from .decorators import (
    MdcInterceptor,
    mdc_interceptor,
    mdc_dot,
    intercept,
    register_from_settings,
)
from .middleware import TraceMiddleware

__all__ = [
    # Generator
    "generate_trace_id",
    "generate_uuid_trace_id",
    "is_structured_trace_id",
    "TRACE_ID_PATTERN",
    "FALLBACK_TRACE_ID_PATTERN",
    "SequenceCounter",
    "sequence_counter",
    "convert_ip",
    "get_process_id",
    "resolve_local_ipv4",
    "reset_identity_cache",
    # Context (MDC)
    "TRACE_ID_KEY",
    "BIZ_CODE_KEY",
    "add",
    "remove",
    "reset",
    "get",
    "get_context",
    "get_trace_id",
    "add_trace_id",
    "get_biz_code",
    "mdc_scope",
    "add_mdc_context",
    # Interception
    "evaluate_biz_code",
    "MdcDot",
    "MdcRegistry",
    "mdc_registry",
    "MdcInterceptor",
    "mdc_interceptor",
    "mdc_dot",
    "intercept",
    "register_from_settings",
    # Middleware
    "TraceMiddleware",
]
