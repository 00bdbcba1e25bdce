# tests/infrastructure/logging/test_structlog_config.py
import json

import pytest
import structlog

from trace_mdc.infrastructure.logging.structlog_config import get_logger, setup_logging
from trace_mdc.infrastructure.tracing.context import mdc_scope


@pytest.fixture(autouse=True)
def restore_structlog():
    yield
    structlog.reset_defaults()


def test_json_log_lines_carry_mdc(capsys):
    """Linhas de log devem ser carimbadas com traceId e bizCode"""
    setup_logging("INFO")
    logger = get_logger("test")

    with mdc_scope(traceId="trace-42", bizCode="article"):
        logger.info("something_happened", value=1)

    line = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert line["event"] == "something_happened"
    assert line["traceId"] == "trace-42"
    assert line["bizCode"] == "article"
    assert line["level"] == "info"
    assert line["value"] == 1


def test_log_without_mdc_has_no_trace_fields(capsys):
    setup_logging("INFO")
    get_logger("test").info("plain_event")

    line = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert "traceId" not in line


def test_level_filtering(capsys):
    setup_logging("WARNING")
    get_logger("test").info("hidden_event")

    assert "hidden_event" not in capsys.readouterr().out
