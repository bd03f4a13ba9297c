"""Run the ingestion worker: ``python -m askit.ingestion``."""

from __future__ import annotations

from arq import run_worker

from askit.ingestion.worker import WorkerSettings


def main() -> None:
    run_worker(WorkerSettings)


if __name__ == "__main__":
    main()
