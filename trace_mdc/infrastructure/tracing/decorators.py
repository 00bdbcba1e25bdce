"""
Interceptação (around advice) que grava o bizCode no MDC e mede a duração.
"""
import contextvars
import functools
import inspect
import time
from typing import Any, AsyncIterator, Callable, Dict, Generator, Iterator, Optional, Tuple

from trace_mdc.infrastructure.config.settings import Settings
from trace_mdc.infrastructure.logging.structlog_config import get_logger
from trace_mdc.infrastructure.tracing.context import BIZ_CODE_KEY, add, mdc_scope
from trace_mdc.infrastructure.tracing.expression import evaluate_biz_code
from trace_mdc.infrastructure.tracing.registry import MdcDot, MdcRegistry, mdc_registry

logger = get_logger("tracing.decorator")

_INTERCEPTED_ATTR = "__mdc_intercepted__"


def _split_qualname(func: Callable) -> Tuple[str, str]:
    """(owner, método): owner é "modulo.Tipo" para métodos e "modulo" para funções."""
    owner, _, method = f"{func.__module__}.{func.__qualname__}".rpartition(".")
    return owner, method


def _drive(ctx: contextvars.Context, iterator: Any) -> Generator[Any, Any, Any]:
    """
    Conduz um gerador/corrotina executando cada passo dentro de ``ctx``.

    Valores enviados e exceções lançadas pelo consumidor são repassados ao
    iterador interno; o valor de retorno dele é devolvido.
    """
    step, arg = iterator.send, None
    while True:
        try:
            item = ctx.run(step, arg)
        except StopIteration as stop:
            return stop.value
        try:
            step, arg = iterator.send, (yield item)
        except BaseException as e:
            step, arg = iterator.throw, e


class _ContextAwaitable:
    """Awaitable que executa a corrotina envolvida dentro de ``ctx``."""

    def __init__(self, ctx: contextvars.Context, awaitable: Any):
        self.ctx = ctx
        self.awaitable = awaitable

    def __await__(self):
        return _drive(self.ctx, self.awaitable)


class MdcInterceptor:
    """
    Coordena ENTER -> EXECUTE -> EXIT -> CLEANUP de uma chamada interceptada.

    Sem metadado registrado a chamada passa direto: sem escrita no MDC,
    sem cleanup e sem log de duração.
    """

    def __init__(self, registry: MdcRegistry = mdc_registry):
        self.registry = registry

    def _load_biz_code(
        self,
        dot: MdcDot,
        signature: inspect.Signature,
        args: tuple,
        kwargs: Dict[str, Any],
    ) -> str:
        if not dot.biz_code.strip():
            return ""
        bound = signature.bind(*args, **kwargs)
        bound.apply_defaults()
        return evaluate_biz_code(dot.biz_code, bound.arguments)

    def _log_duration(self, owner: str, method: str, start_time: float) -> None:
        logger.info(
            "method_execution_time",
            type=owner.rpartition(".")[2],
            method=method,
            duration_ms=int((time.time() - start_time) * 1000),
        )

    def invoke(
        self,
        func: Callable,
        args: tuple,
        kwargs: Dict[str, Any],
        owner: str,
        method: str,
        signature: Optional[inspect.Signature] = None,
    ) -> Any:
        dot = self.registry.lookup(owner, method)
        if dot is None:
            return func(*args, **kwargs)

        start_time = time.time()
        biz_code = self._load_biz_code(dot, signature or inspect.signature(func), args, kwargs)
        with mdc_scope(**{BIZ_CODE_KEY: biz_code}):
            try:
                return func(*args, **kwargs)
            finally:
                self._log_duration(owner, method, start_time)

    async def invoke_async(
        self,
        func: Callable,
        args: tuple,
        kwargs: Dict[str, Any],
        owner: str,
        method: str,
        signature: Optional[inspect.Signature] = None,
    ) -> Any:
        # Versão assíncrona (mesmo fluxo, com await)
        dot = self.registry.lookup(owner, method)
        if dot is None:
            return await func(*args, **kwargs)

        start_time = time.time()
        biz_code = self._load_biz_code(dot, signature or inspect.signature(func), args, kwargs)
        with mdc_scope(**{BIZ_CODE_KEY: biz_code}):
            try:
                return await func(*args, **kwargs)
            finally:
                self._log_duration(owner, method, start_time)

    def _open_context(
        self,
        dot: MdcDot,
        signature: inspect.Signature,
        args: tuple,
        kwargs: Dict[str, Any],
    ) -> contextvars.Context:
        """Contexto próprio do gerador: herda o MDC atual e recebe o bizCode."""
        biz_code = self._load_biz_code(dot, signature, args, kwargs)
        ctx = contextvars.copy_context()
        ctx.run(add, BIZ_CODE_KEY, biz_code)
        return ctx

    def invoke_generator(
        self,
        func: Callable,
        args: tuple,
        kwargs: Dict[str, Any],
        owner: str,
        method: str,
        signature: Optional[inspect.Signature] = None,
    ) -> Iterator[Any]:
        """
        Versão para funções geradoras.

        O corpo roda em um contexto próprio a cada passo, então o bizCode vale
        durante toda a iteração mas não vaza para o consumidor entre os
        ``yield``. A duração é logada quando a iteração termina ou é fechada.
        """
        dot = self.registry.lookup(owner, method)
        if dot is None:
            return (yield from func(*args, **kwargs))

        start_time = time.time()
        ctx = self._open_context(dot, signature or inspect.signature(func), args, kwargs)
        generator = ctx.run(func, *args, **kwargs)
        try:
            return (yield from _drive(ctx, generator))
        finally:
            ctx.run(generator.close)
            ctx.run(self._log_duration, owner, method, start_time)

    async def invoke_async_generator(
        self,
        func: Callable,
        args: tuple,
        kwargs: Dict[str, Any],
        owner: str,
        method: str,
        signature: Optional[inspect.Signature] = None,
    ) -> AsyncIterator[Any]:
        # Mesmo fluxo de invoke_generator, para async generators
        dot = self.registry.lookup(owner, method)
        if dot is None:
            async for item in func(*args, **kwargs):
                yield item
            return

        start_time = time.time()
        ctx = self._open_context(dot, signature or inspect.signature(func), args, kwargs)
        generator = ctx.run(func, *args, **kwargs)
        try:
            step, arg = generator.asend, None
            while True:
                try:
                    item = await _ContextAwaitable(ctx, step(arg))
                except StopAsyncIteration:
                    return
                try:
                    step, arg = generator.asend, (yield item)
                except GeneratorExit:
                    raise
                except BaseException as e:
                    step, arg = generator.athrow, e
        finally:
            await _ContextAwaitable(ctx, generator.aclose())
            ctx.run(self._log_duration, owner, method, start_time)


mdc_interceptor = MdcInterceptor()


def _wrap(func: Callable, owner: str, method: str, interceptor: MdcInterceptor) -> Callable:
    signature = inspect.signature(func)

    @functools.wraps(func)
    async def async_wrapper(*args, **kwargs):
        return await interceptor.invoke_async(func, args, kwargs, owner, method, signature)

    @functools.wraps(func)
    def sync_wrapper(*args, **kwargs):
        return interceptor.invoke(func, args, kwargs, owner, method, signature)

    @functools.wraps(func)
    def generator_wrapper(*args, **kwargs):
        return (yield from interceptor.invoke_generator(func, args, kwargs, owner, method, signature))

    @functools.wraps(func)
    def async_generator_wrapper(*args, **kwargs):
        # Devolve o async generator direto: aclose/athrow chegam ao interceptor
        return interceptor.invoke_async_generator(func, args, kwargs, owner, method, signature)

    if inspect.isasyncgenfunction(func):
        wrapper = async_generator_wrapper
    elif inspect.iscoroutinefunction(func):
        wrapper = async_wrapper
    elif inspect.isgeneratorfunction(func):
        wrapper = generator_wrapper
    else:
        wrapper = sync_wrapper
    setattr(wrapper, _INTERCEPTED_ATTR, True)
    return wrapper


def intercept(
    owner: Optional[str] = None,
    interceptor: MdcInterceptor = mdc_interceptor,
):
    """
    Around advice genérico: consulta o registro a cada chamada.

    Útil quando os metadados vêm da configuração (``register_from_settings``)
    em vez de ``@mdc_dot``.

    Args:
        owner: Nome qualificado do tipo; por padrão derivado de ``__qualname__``
    """
    def decorator(func: Callable) -> Callable:
        default_owner, method = _split_qualname(func)
        return _wrap(func, owner or default_owner, method, interceptor)

    return decorator


def _intercept_class(cls: type, interceptor: MdcInterceptor) -> type:
    owner = f"{cls.__module__}.{cls.__qualname__}"
    for name, attr in list(vars(cls).items()):
        if name.startswith("_"):
            continue
        if isinstance(attr, (staticmethod, classmethod)):
            func = attr.__func__
            if getattr(func, _INTERCEPTED_ATTR, False):
                continue
            setattr(cls, name, type(attr)(_wrap(func, owner, name, interceptor)))
        elif inspect.isfunction(attr) and not getattr(attr, _INTERCEPTED_ATTR, False):
            setattr(cls, name, _wrap(attr, owner, name, interceptor))
    return cls


def mdc_dot(
    biz_code: str = "",
    registry: MdcRegistry = mdc_registry,
):
    """
    Decorador que marca função, método ou classe para interceptação MDC.

    Em métodos/funções registra o metadado no nível de método; em classes
    registra no nível de tipo e intercepta todos os métodos públicos.

    Args:
        biz_code: Expressão avaliada sobre os argumentos (ex: "#name")

    Exemplo:
        @mdc_dot(biz_code="#article_id")
        def publish(article_id: int):
            ...
    """
    dot = MdcDot(biz_code=biz_code)
    interceptor = mdc_interceptor if registry is mdc_registry else MdcInterceptor(registry)

    def decorator(target):
        if inspect.isclass(target):
            registry.register_type(f"{target.__module__}.{target.__qualname__}", dot)
            return _intercept_class(target, interceptor)

        owner, method = _split_qualname(target)
        registry.register_method(f"{owner}.{method}", dot)
        return _wrap(target, owner, method, interceptor)

    return decorator


def register_from_settings(settings: Settings, registry: MdcRegistry = mdc_registry) -> int:
    """
    Monta a tabela de registro a partir da configuração.

    Returns:
        Quantidade de entradas registradas
    """
    registry.load(settings.mdc_biz_codes, settings.mdc_type_biz_codes)
    logger.info(
        "mdc_registry_loaded",
        methods=len(settings.mdc_biz_codes),
        types=len(settings.mdc_type_biz_codes),
    )
    return len(settings.mdc_biz_codes) + len(settings.mdc_type_biz_codes)
