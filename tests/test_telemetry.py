import json
import logging

import pytest

from latency_service.telemetry import setup_logging, setup_tracing


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


def test_logs_are_json_lines(capsys, restore_root_logger):
    setup_logging("INFO")
    logging.getLogger("latency_service.test").info("Request failed", extra={"kind": "injected"})

    record = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
    assert record["level"] == "INFO"
    assert record["name"] == "latency_service.test"
    assert record["message"] == "Request failed"
    assert record["kind"] == "injected"
    assert "timestamp" in record


def test_level_filters_records(capsys, restore_root_logger):
    setup_logging("WARNING")
    logging.getLogger("latency_service.test").info("hidden")
    assert capsys.readouterr().err == ""


def test_tracing_is_skipped_without_endpoint():
    assert setup_tracing("latency-service", "") is None
