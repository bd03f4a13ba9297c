"""Command line client for a running askit API."""

from __future__ import annotations

import argparse
import sys
import time

import httpx

TERMINAL_PHASES = frozenset({"completed", "failed"})


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="askit",
        description="Ingest websites and ask questions against a running askit API.",
    )
    parser.add_argument(
        "--host",
        default="http://localhost:8000",
        help="Base URL for the askit API (default: %(default)s)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=30.0,
        help="HTTP timeout in seconds (default: %(default)s).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    ingest = subparsers.add_parser("ingest", help="Queue a website for ingestion.")
    ingest.add_argument("url", help="Root URL of the website to crawl.")
    ingest.add_argument("--tenant", required=True, help="Tenant key owning the content.")
    ingest.add_argument(
        "--wait",
        action="store_true",
        help="Poll the job until it completes or fails.",
    )
    ingest.add_argument(
        "--poll-interval",
        type=float,
        default=2.0,
        help="Seconds between status polls with --wait (default: %(default)s).",
    )

    status = subparsers.add_parser("status", help="Show the status of an ingestion job.")
    status.add_argument("job_id")

    ask = subparsers.add_parser("ask", help="Ask a question about indexed websites.")
    ask.add_argument("question")
    ask.add_argument("--tenant", required=True, help="Tenant key owning the content.")
    ask.add_argument("--website", default=None, help="Restrict retrieval to one website.")
    ask.add_argument("--top-k", type=int, default=20, help="Chunks to retrieve (1-50).")
    return parser


def _print_error(response: httpx.Response) -> None:
    try:
        detail = response.json().get("title") or response.text
    except ValueError:
        detail = response.text
    print(f"! request failed ({response.status_code}): {detail}", file=sys.stderr)


def _print_status(body: dict[str, object]) -> None:
    print(
        f"{body.get('job_id')}  {body.get('phase'):<12} {body.get('progress_percent'):>3}%  "
        f"{body.get('message') or ''}"
    )


def _ingest(client: httpx.Client, args: argparse.Namespace) -> int:
    response = client.post("/ingest", json={"website_url": args.url, "tenant_key": args.tenant})
    if response.status_code != 202:
        _print_error(response)
        return 1
    job_id = response.json()["job_id"]
    print(f"queued job {job_id}")
    if not args.wait:
        return 0

    last_seen: tuple[object, object] | None = None
    while True:
        status_response = client.get(f"/jobs/{job_id}")
        if status_response.status_code != 200:
            _print_error(status_response)
            return 1
        body = status_response.json()
        current = (body.get("phase"), body.get("progress_percent"))
        if current != last_seen:
            _print_status(body)
            last_seen = current
        if body.get("phase") in TERMINAL_PHASES:
            return 0 if body.get("phase") == "completed" else 1
        time.sleep(args.poll_interval)


def _status(client: httpx.Client, args: argparse.Namespace) -> int:
    response = client.get(f"/jobs/{args.job_id}")
    if response.status_code != 200:
        _print_error(response)
        return 1
    _print_status(response.json())
    return 0


def _ask(client: httpx.Client, args: argparse.Namespace) -> int:
    payload = {
        "question": args.question,
        "tenant_key": args.tenant,
        "website": args.website,
        "top_k": args.top_k,
    }
    response = client.post("/query", json=payload)
    if response.status_code != 200:
        _print_error(response)
        return 1
    body = response.json()
    print(body["answer"])
    sources = body.get("sources") or []
    if sources:
        print("\nSources:")
        for source in sources:
            print(f"  - {source}")
    return 0


_COMMANDS = {"ingest": _ingest, "status": _status, "ask": _ask}


def main(argv: list[str] | None = None, *, transport: httpx.BaseTransport | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        with httpx.Client(base_url=args.host, timeout=args.timeout, transport=transport) as client:
            return _COMMANDS[args.command](client, args)
    except httpx.HTTPError as exc:
        print(f"! cannot reach {args.host}: {exc}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        print()
        return 130


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    raise SystemExit(main())
