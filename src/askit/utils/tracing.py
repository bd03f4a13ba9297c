"""Thin helpers over the OpenTelemetry tracing API."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import TypedDict

from opentelemetry import trace
from opentelemetry.trace import Span, get_current_span

_TRACER_NAME = "askit"


class TraceContext(TypedDict, total=False):
    trace_id: str
    span_id: str


def get_current_trace_ids() -> TraceContext:
    """Return hex trace/span ids of the active span, or an empty mapping."""

    span_context = get_current_span().get_span_context()
    if not span_context.is_valid:
        return {}
    return {
        "trace_id": f"{span_context.trace_id:032x}",
        "span_id": f"{span_context.span_id:016x}",
    }


@contextmanager
def start_span(name: str, **attributes: str | int | float | bool) -> Iterator[Span]:
    """Open a span on the askit tracer; attributes are namespaced ``askit.*``."""

    tracer = trace.get_tracer(_TRACER_NAME)
    with tracer.start_as_current_span(name) as span:
        for key, value in attributes.items():
            span.set_attribute(f"askit.{key}", value)
        yield span
