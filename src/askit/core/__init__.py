"""Configuration, errors, logging and telemetry shared by askit services."""

from . import config, errors, logging
from .config import (
    AppSettings,
    BrowserSettings,
    CrawlerSettings,
    IngestionSettings,
    LLMSettings,
    OpenAISettings,
    PostgresSettings,
    QdrantSettings,
    RedisSettings,
    TelemetrySettings,
)
from .errors import CoreError, NotFoundError, UpstreamError, ValidationError
from .logging import configure_logging, get_logger

__all__ = [
    "config",
    "errors",
    "logging",
    "configure_logging",
    "get_logger",
    "AppSettings",
    "BrowserSettings",
    "CrawlerSettings",
    "IngestionSettings",
    "LLMSettings",
    "OpenAISettings",
    "PostgresSettings",
    "QdrantSettings",
    "RedisSettings",
    "TelemetrySettings",
    "CoreError",
    "NotFoundError",
    "UpstreamError",
    "ValidationError",
]
