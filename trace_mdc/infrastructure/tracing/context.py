"""
MDC (contexto ambiente) por unidade de trabalho usando contextvars.

O valor guardado no ContextVar é um snapshot imutável: toda escrita cria um
novo mapeamento. Tasks asyncio herdam o snapshot do pai, mas nunca enxergam
escritas umas das outras.
"""
import contextvars
from contextlib import contextmanager
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, MutableMapping, Optional

from trace_mdc.infrastructure.tracing.generator import generate_trace_id

TRACE_ID_KEY = "traceId"
BIZ_CODE_KEY = "bizCode"

_EMPTY: Mapping[str, str] = MappingProxyType({})

mdc_var: contextvars.ContextVar[Mapping[str, str]] = contextvars.ContextVar(
    "mdc", default=_EMPTY
)


def _to_str(value: Any) -> str:
    return "" if value is None else str(value)


def add(key: str, value: Any) -> None:
    """Insere/atualiza uma chave no MDC da unidade de trabalho atual."""
    current = mdc_var.get()
    mdc_var.set(MappingProxyType({**current, key: _to_str(value)}))


def remove(key: str) -> None:
    """Remove uma chave do MDC (no-op se ausente)."""
    current = mdc_var.get()
    if key not in current:
        return
    mdc_var.set(MappingProxyType({k: v for k, v in current.items() if k != key}))


def reset() -> None:
    """Limpa todas as chaves do MDC da unidade de trabalho atual."""
    mdc_var.set(_EMPTY)


def get(key: str, default: Optional[str] = None) -> Optional[str]:
    return mdc_var.get().get(key, default)


def get_context() -> Dict[str, str]:
    """Retorna cópia do MDC atual."""
    return dict(mdc_var.get())


def get_trace_id() -> Optional[str]:
    """Trace id da unidade de trabalho atual (None se ausente)."""
    return get(TRACE_ID_KEY)


def add_trace_id(trace_id: Optional[str] = None) -> str:
    """
    Grava o trace id no MDC, gerando um novo quando não informado.

    Returns:
        O trace id gravado
    """
    if not trace_id:
        trace_id = generate_trace_id()
    add(TRACE_ID_KEY, trace_id)
    return trace_id


def get_biz_code() -> Optional[str]:
    return get(BIZ_CODE_KEY)


@contextmanager
def mdc_scope(**values: Any) -> Iterator[None]:
    """
    Abre uma unidade de trabalho no MDC.

    Grava ``values`` ao entrar e, na saída (sucesso ou erro), restaura
    exatamente o snapshot vigente na entrada.

    Exemplo:
        with mdc_scope(traceId=generate_trace_id()):
            handle_request()
    """
    token = mdc_var.set(mdc_var.get())
    try:
        for key, value in values.items():
            add(key, value)
        yield
    finally:
        mdc_var.reset(token)


def add_mdc_context(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """
    Processor structlog que carimba cada log com o MDC atual.

    Campos passados explicitamente no evento têm precedência.
    """
    for key, value in mdc_var.get().items():
        event_dict.setdefault(key, value)
    return event_dict
