# tests/infrastructure/tracing/test_sequence.py
from concurrent.futures import ThreadPoolExecutor

import pytest

from trace_mdc.infrastructure.tracing.sequence import SequenceCounter


def test_sequence_starts_at_lower_bound():
    counter = SequenceCounter()
    assert counter.next() == 1000
    assert counter.next() == 1001


def test_sequence_cycles_without_gaps():
    """1000..9999 e volta para 1000, sem pular nem repetir"""
    counter = SequenceCounter()
    values = [counter.next() for _ in range(9000 + 3)]

    assert values[:9000] == list(range(1000, 10000))
    assert values[9000:] == [1000, 1001, 1002]


def test_sequence_wraps_small_range():
    counter = SequenceCounter(lower=1, upper=4)
    assert [counter.next() for _ in range(7)] == [1, 2, 3, 1, 2, 3, 1]


def test_sequence_value_is_next_to_be_returned():
    counter = SequenceCounter()
    counter.next()
    assert counter.value == 1001


def test_sequence_reset():
    counter = SequenceCounter()
    for _ in range(10):
        counter.next()
    counter.reset()
    assert counter.next() == 1000


def test_sequence_rejects_empty_range():
    with pytest.raises(ValueError):
        SequenceCounter(lower=10, upper=10)


def test_concurrent_next_returns_distinct_values():
    """Chamadas concorrentes não podem receber o mesmo valor dentro de um ciclo"""
    counter = SequenceCounter()

    def worker(_):
        return [counter.next() for _ in range(1000)]

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = [value for chunk in pool.map(worker, range(8)) for value in chunk]

    assert len(results) == 8000
    assert len(set(results)) == 8000
    assert set(results) == set(range(1000, 9000))
    assert counter.value == 9000


def test_concurrent_next_loses_no_updates_across_wraps():
    """Estado final = lower + total de chamadas mod tamanho do ciclo"""
    counter = SequenceCounter()
    calls_per_worker = 2500
    workers = 8

    def worker(_):
        for _ in range(calls_per_worker):
            counter.next()

    with ThreadPoolExecutor(max_workers=workers) as pool:
        list(pool.map(worker, range(workers)))

    total = calls_per_worker * workers
    assert counter.value == 1000 + total % 9000
