"""Ingestion submission and job status endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status

from askit.core.errors import NotFoundError
from askit.ingestion.models import JobPhase, JobStatus
from askit.ingestion.producer import IngestionProducer

from .. import schemas
from ..dependencies import get_producer

router = APIRouter(tags=["ingestion"])

ProducerDep = Annotated[IngestionProducer, Depends(get_producer)]


@router.post(
    "/ingest",
    response_model=schemas.IngestResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def submit_ingest(
    body: schemas.IngestRequest, producer: ProducerDep
) -> schemas.IngestResponse:
    """Queue a crawl-and-index job for a website."""

    job_id = await producer.submit(body.website_url, body.tenant_key)
    return schemas.IngestResponse(job_id=job_id, status_url=f"/jobs/{job_id}")


@router.get("/jobs/{job_id}", response_model=JobStatus)
async def get_job_status(job_id: str, producer: ProducerDep) -> JobStatus:
    job_status = await producer.get_status(job_id)
    if job_status is None:
        raise NotFoundError("job not found", details={"job_id": job_id})
    return job_status


@router.delete("/jobs/{job_id}", status_code=status.HTTP_204_NO_CONTENT)
async def clear_job(job_id: str, producer: ProducerDep) -> Response:
    await producer.clear_job(job_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/jobs", response_model=schemas.ClearJobsResponse)
async def clear_jobs(
    producer: ProducerDep,
    phase: Annotated[JobPhase | None, Query()] = None,
) -> schemas.ClearJobsResponse:
    """Remove finished job records, optionally only completed or failed ones."""

    cleared = await producer.clear_jobs(phase)
    return schemas.ClearJobsResponse(cleared=cleared)


@router.get("/queue-stats", response_model=schemas.QueueStatsResponse)
async def queue_stats(producer: ProducerDep) -> schemas.QueueStatsResponse:
    stats = await producer.queue_stats()
    return schemas.QueueStatsResponse.from_stats(stats)
