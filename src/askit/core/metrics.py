"""Prometheus instruments shared by the worker and the API."""

from __future__ import annotations

from fastapi import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

REQUEST_LATENCY = Histogram(
    "askit_http_request_latency_seconds",
    "Latency of HTTP requests.",
    ["method", "route", "status_code"],
)

REQUEST_COUNTER = Counter(
    "askit_http_requests_total",
    "Total number of processed HTTP requests.",
    ["method", "route", "status_code"],
)

PAGES_CRAWLED = Counter(
    "askit_pages_crawled_total",
    "Pages accepted by the crawler.",
)

PAGE_FAILURES = Counter(
    "askit_page_failures_total",
    "Pages that failed to fetch or extract.",
    ["reason"],
)

CHUNKS_EMBEDDED = Counter(
    "askit_chunks_embedded_total",
    "Chunk embedding attempts by outcome.",
    ["outcome"],
)

INGEST_JOBS = Counter(
    "askit_ingest_jobs_total",
    "Finished ingestion jobs by terminal phase.",
    ["phase"],
)

INGEST_DURATION = Histogram(
    "askit_ingest_job_duration_seconds",
    "Wall-clock duration of ingestion jobs.",
    buckets=(5, 15, 30, 60, 120, 300, 600, 1200, 1800),
)

ANSWERS = Counter(
    "askit_answers_total",
    "Answer requests by outcome.",
    ["outcome"],
)


def metrics_response() -> Response:
    """Generate a Prometheus metrics response."""

    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
