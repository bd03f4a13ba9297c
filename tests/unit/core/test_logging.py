from __future__ import annotations

import json
import logging

import pytest
import structlog
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider

from askit.core.logging import bound_context, configure_logging, get_logger

pytestmark = pytest.mark.unit


def test_structlog_injects_trace_context(capsys) -> None:
    configure_logging()

    trace.set_tracer_provider(TracerProvider())
    tracer = trace.get_tracer(__name__)

    logger = get_logger("test")

    with tracer.start_as_current_span("logging-test"):
        logger.info("log_event", component="test")

    captured = capsys.readouterr().out.strip().splitlines()
    assert captured

    record = json.loads(captured[-1])
    assert record["event"] == "log_event"
    assert record["component"] == "test"
    assert "trace_id" in record and len(record["trace_id"]) == 32
    assert "span_id" in record and len(record["span_id"]) == 16


def test_bound_context_fields_are_scoped_to_block(capsys) -> None:
    configure_logging()
    logger = get_logger("test")

    with bound_context(job_id="job-1"):
        logger.info("inside")
    logger.info("outside")

    lines = [json.loads(line) for line in capsys.readouterr().out.strip().splitlines()]
    inside = next(line for line in lines if line["event"] == "inside")
    outside = next(line for line in lines if line["event"] == "outside")
    assert inside["job_id"] == "job-1"
    assert "job_id" not in outside


def test_stdlib_records_keep_extra_fields() -> None:
    configure_logging()
    handler = next(
        handler
        for handler in logging.getLogger().handlers
        if isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter)
    )
    record = logging.LogRecord(
        "askit.test", logging.INFO, __file__, 1, "crawl completed", None, None
    )
    record.pages_found = 3

    rendered = json.loads(handler.format(record))

    assert rendered["event"] == "crawl completed"
    assert rendered["pages_found"] == 3
    assert rendered["logger"] == "askit.test"
    assert rendered["level"] == "info"
