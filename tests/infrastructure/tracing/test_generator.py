# tests/infrastructure/tracing/test_generator.py
import re
import time
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock, patch

import pytest

from trace_mdc.core.exceptions import IdentityResolutionError
from trace_mdc.infrastructure.tracing.generator import (
    FALLBACK_TRACE_ID_PATTERN,
    TRACE_ID_PATTERN,
    generate_trace_id,
    generate_uuid_trace_id,
    is_structured_trace_id,
)
from trace_mdc.infrastructure.tracing.identity import reset_identity_cache

ANY_TRACE_ID = re.compile(r"^(?:[0-9a-f]{8}\.\d+\.\d{9}|[0-9a-f]{32})$")


@pytest.fixture
def fixed_host():
    with patch("trace_mdc.infrastructure.tracing.generator.resolve_local_ipv4",
               return_value="39.105.208.175"):
        yield


def test_generate_trace_id_structured_format(fixed_host):
    """Trace id deve ser ip hex . epoch ms . pid(5) + seq(4)"""
    trace_id = generate_trace_id()

    assert TRACE_ID_PATTERN.match(trace_id)
    host, timestamp, suffix = trace_id.split(".")
    assert host == "2769d0af"
    assert abs(int(timestamp) - int(time.time() * 1000)) < 60_000
    assert len(suffix) == 9
    assert 1000 <= int(suffix[5:]) <= 9999


def test_generate_trace_id_embeds_process_id(fixed_host):
    with patch("trace_mdc.infrastructure.tracing.identity.os.getpid", return_value=95):
        trace_id = generate_trace_id()

    assert trace_id.split(".")[2].startswith("00095")


def test_generate_trace_id_is_unique_under_concurrency(fixed_host):
    with ThreadPoolExecutor(max_workers=8) as pool:
        trace_ids = list(pool.map(lambda _: generate_trace_id(), range(2000)))

    assert len(set(trace_ids)) == 2000
    assert all(TRACE_ID_PATTERN.match(t) for t in trace_ids)


def test_generate_trace_id_falls_back_when_ip_fails():
    """Falha ao resolver IP -> UUID sem hífens, sem propagar erro"""
    with patch("trace_mdc.infrastructure.tracing.generator.resolve_local_ipv4",
               side_effect=IdentityResolutionError("local IPv4", "no route")), \
            patch("trace_mdc.infrastructure.tracing.generator.logger") as mock_logger:
        trace_id = generate_trace_id()

    assert FALLBACK_TRACE_ID_PATTERN.match(trace_id)
    assert "." not in trace_id
    mock_logger.error.assert_called_once()
    assert "trace_id_generation_failed" in str(mock_logger.error.call_args)


def test_generate_trace_id_falls_back_when_pid_fails(fixed_host):
    with patch("trace_mdc.infrastructure.tracing.identity.os.getpid", return_value="not-a-pid"), \
            patch("trace_mdc.infrastructure.tracing.generator.logger"):
        trace_id = generate_trace_id()

    assert FALLBACK_TRACE_ID_PATTERN.match(trace_id)


def test_generate_trace_id_falls_back_on_unexpected_error(fixed_host):
    with patch("trace_mdc.infrastructure.tracing.generator.sequence_counter") as mock_counter, \
            patch("trace_mdc.infrastructure.tracing.generator.logger"):
        mock_counter.next.side_effect = RuntimeError("boom")
        trace_id = generate_trace_id()

    assert FALLBACK_TRACE_ID_PATTERN.match(trace_id)


@pytest.mark.parametrize("bad_ip", ["", "localhost", "1.2.3", "999.0.0.1"])
def test_generate_trace_id_always_matches_one_of_two_shapes(bad_ip):
    with patch("trace_mdc.infrastructure.tracing.generator.resolve_local_ipv4", return_value=bad_ip), \
            patch("trace_mdc.infrastructure.tracing.generator.logger"):
        assert ANY_TRACE_ID.match(generate_trace_id())


def test_generate_uuid_trace_id():
    trace_id = generate_uuid_trace_id()
    assert len(trace_id) == 32
    assert "-" not in trace_id


def test_is_structured_trace_id():
    assert is_structured_trace_id("ac13e001.1685348263825.095001000")
    assert not is_structured_trace_id(generate_uuid_trace_id())
    assert not is_structured_trace_id("ac13e001.1685348263825.0950010")


def test_failed_host_resolution_is_not_retried_per_generation():
    """Host sem IPv4 resolvível: uma única consulta DNS para vários trace ids"""
    reset_identity_cache()
    fake_settings = MagicMock(trace_host_ip=None)
    try:
        with patch("trace_mdc.infrastructure.tracing.identity.get_settings", return_value=fake_settings), \
                patch("trace_mdc.infrastructure.tracing.identity._probe_outbound_ipv4",
                      return_value=None) as mock_probe, \
                patch("trace_mdc.infrastructure.tracing.identity.socket.gethostbyname",
                      side_effect=OSError("no host")) as mock_dns, \
                patch("trace_mdc.infrastructure.tracing.generator.logger"):
            trace_ids = [generate_trace_id() for _ in range(5)]
    finally:
        reset_identity_cache()

    assert all(FALLBACK_TRACE_ID_PATTERN.match(t) for t in trace_ids)
    assert mock_probe.call_count == 1
    assert mock_dns.call_count == 1
