from __future__ import annotations

import json

import httpx
import pytest

from askit.cli import main

pytestmark = pytest.mark.unit


def make_transport(responses: dict[tuple[str, str], list[httpx.Response]]):
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        queue = responses[(request.method, request.url.path)]
        return queue.pop(0) if len(queue) > 1 else queue[0]

    return httpx.MockTransport(handler), requests


def test_ingest_waits_until_job_completes(capsys) -> None:
    transport, requests = make_transport(
        {
            ("POST", "/ingest"): [
                httpx.Response(202, json={"job_id": "job-1", "status_url": "/jobs/job-1"})
            ],
            ("GET", "/jobs/job-1"): [
                httpx.Response(
                    200,
                    json={"job_id": "job-1", "phase": "crawling", "progress_percent": 22},
                ),
                httpx.Response(
                    200,
                    json={
                        "job_id": "job-1",
                        "phase": "completed",
                        "progress_percent": 100,
                        "message": "Ingestion completed",
                    },
                ),
            ],
        }
    )

    exit_code = main(
        [
            "ingest",
            "https://example.com",
            "--tenant",
            "tenant-a",
            "--wait",
            "--poll-interval",
            "0",
        ],
        transport=transport,
    )

    assert exit_code == 0
    assert json.loads(requests[0].content) == {
        "website_url": "https://example.com",
        "tenant_key": "tenant-a",
    }
    output = capsys.readouterr().out
    assert "queued job job-1" in output
    assert "completed" in output and "100%" in output


def test_status_reports_missing_job(capsys) -> None:
    transport, _ = make_transport(
        {("GET", "/jobs/nope"): [httpx.Response(404, json={"title": "job not found"})]}
    )

    assert main(["status", "nope"], transport=transport) == 1
    assert "job not found" in capsys.readouterr().err


def test_ask_prints_answer_and_sources(capsys) -> None:
    transport, requests = make_transport(
        {
            ("POST", "/query"): [
                httpx.Response(
                    200,
                    json={
                        "answer": "We ship worldwide.",
                        "sources": ["https://example.com/shipping"],
                    },
                )
            ]
        }
    )

    exit_code = main(
        ["ask", "Do you ship abroad?", "--tenant", "tenant-a", "--top-k", "5"],
        transport=transport,
    )

    assert exit_code == 0
    assert json.loads(requests[0].content)["top_k"] == 5
    output = capsys.readouterr().out
    assert "We ship worldwide." in output
    assert "https://example.com/shipping" in output


def test_unreachable_api_exits_with_code_2(capsys) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    assert main(["status", "job-1"], transport=httpx.MockTransport(handler)) == 2
    assert "cannot reach" in capsys.readouterr().err
