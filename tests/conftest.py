import pytest

from trace_mdc.infrastructure.tracing.context import reset


@pytest.fixture(autouse=True)
def clean_mdc():
    """Cada teste começa e termina com o MDC vazio"""
    reset()
    yield
    reset()
