"""Website ingestion: job submission, status tracking and the worker pipeline."""

from .errors import CrawlError, IngestionError, IngestionRejected, NoContentError, PersistenceError
from .models import IngestJob, IngestSummary, JobPhase, JobStatus, QueueStats
from .pipeline import IngestionPipeline, PlannedChunk, collect_chunks
from .producer import IngestionProducer
from .progress import ProgressTracker, processing_progress
from .sinks import PostgresSiteRecordSink, SiteRecordSink
from .status import RedisJobStatusStore

__all__ = [
    "CrawlError",
    "IngestJob",
    "IngestSummary",
    "IngestionError",
    "IngestionPipeline",
    "IngestionProducer",
    "IngestionRejected",
    "JobPhase",
    "JobStatus",
    "NoContentError",
    "PersistenceError",
    "PlannedChunk",
    "PostgresSiteRecordSink",
    "ProgressTracker",
    "QueueStats",
    "RedisJobStatusStore",
    "SiteRecordSink",
    "collect_chunks",
    "processing_progress",
]
