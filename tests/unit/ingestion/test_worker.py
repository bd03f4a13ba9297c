from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from askit.ingestion.models import IngestJob, IngestSummary
from askit.ingestion.worker import WorkerSettings, process_website_ingest

pytestmark = pytest.mark.unit


@dataclass
class StubPipeline:
    jobs: list[IngestJob] = field(default_factory=list)

    async def run(self, job: IngestJob) -> IngestSummary:
        self.jobs.append(job)
        return IngestSummary(pages_crawled=1, chunks_attempted=2, chunks_succeeded=2)


@pytest.mark.asyncio
async def test_process_website_ingest_runs_pipeline_with_payload() -> None:
    pipeline = StubPipeline()
    payload = {
        "job_id": "job-9",
        "website_url": "https://example.com",
        "tenant_key": "tenant-a",
    }

    result = await process_website_ingest({"pipeline": pipeline, "job_try": 1}, payload)

    assert pipeline.jobs[0].job_id == "job-9"
    assert result["chunks_succeeded"] == 2
    assert result["success_rate"] == 100.0


def test_worker_settings_do_not_retry_failed_jobs() -> None:
    assert WorkerSettings.max_tries == 1
    assert process_website_ingest in WorkerSettings.functions
    assert WorkerSettings.queue_name == "askit:ingest"
