"""Configuration loaders for the askit services.

Leverages pydantic-settings to hydrate runtime configuration from environment
variables, an optional ``.env`` file, or default values. Nested settings classes
mirror infrastructure concerns (queue, vector store, model providers, crawler).
"""

from __future__ import annotations

from functools import cached_property
from typing import Any

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseAppSettings(BaseSettings):
    """Base settings that looks at environment variables and an optional .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class RedisSettings(BaseAppSettings):
    """Redis connection details for the ingestion queue and job status store."""

    model_config = SettingsConfigDict(
        env_prefix="redis_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    host: str = "localhost"
    port: int = Field(default=6379, ge=1, le=65535)
    db: int = Field(default=0, ge=0)
    password: str | None = None
    queue_name: str = "askit:ingest"
    status_prefix: str = "askit:jobs"
    progress_channel_template: str = "askit:progress:{tenant}"
    max_jobs: int = Field(default=4, ge=1)
    job_timeout_seconds: int = Field(default=60 * 30, ge=1)


class QdrantSettings(BaseAppSettings):
    """Qdrant vector store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="qdrant_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    url: str = "http://localhost:6333"
    api_key: str | None = None
    collection: str = "askit_chunks"
    vector_size: int = Field(default=1536, ge=1)
    distance: str = "Cosine"
    timeout_seconds: float = Field(default=10.0, ge=0.1)


class OpenAISettings(BaseAppSettings):
    """Configuration for the OpenAI-compatible embedding and generation APIs."""

    model_config = SettingsConfigDict(
        env_prefix="openai_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    api_key: str | None = None
    base_url: str | None = None
    embedding_model: str = Field(default="text-embedding-3-small")
    embedding_dimensions: int | None = Field(default=1536, ge=1)
    chat_model: str = Field(
        default="gpt-4.1-mini",
        validation_alias=AliasChoices("openai_chat_model", "openai_model"),
    )
    embedding_timeout_seconds: float = Field(default=10.0, ge=0.1)
    timeout_seconds: float = Field(default=30.0, ge=0.1)


class LLMSettings(BaseAppSettings):
    """Sampling parameters for grounded answer generation."""

    model_config = SettingsConfigDict(
        env_prefix="llm_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=1000, ge=1)
    assistant_name: str = "Askit"


class CrawlerSettings(BaseAppSettings):
    """Crawl budget, pacing, and politeness settings."""

    model_config = SettingsConfigDict(
        env_prefix="crawler_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    default_max_pages: int = Field(default=10, ge=1)
    max_pages_limit: int = Field(default=50, ge=1)
    attempt_multiplier: int = Field(default=3, ge=1)
    links_per_page: int = Field(default=5, ge=0)
    request_delay_seconds: float = Field(default=0.5, ge=0.0)
    min_text_length: int = Field(default=20, ge=0)
    user_agent: str = "Mozilla/5.0"
    robots_timeout_seconds: float = Field(default=5.0, ge=0.1)


class BrowserSettings(BaseAppSettings):
    """Headless Chromium settings used by the page fetcher."""

    model_config = SettingsConfigDict(
        env_prefix="browser_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    headless: bool = True
    navigation_timeout_ms: int = Field(default=30_000, ge=1)
    settle_delay_ms: int = Field(default=1_000, ge=0)
    viewport_width: int = Field(default=1366, ge=1)
    viewport_height: int = Field(default=768, ge=1)
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    launch_args: list[str] = Field(
        default_factory=lambda: [
            "--no-sandbox",
            "--disable-setuid-sandbox",
            "--disable-blink-features=AutomationControlled",
        ]
    )


class IngestionSettings(BaseAppSettings):
    """Chunking and batching parameters for the ingestion worker."""

    model_config = SettingsConfigDict(
        env_prefix="ingest_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    chunk_size: int = Field(default=1600, ge=1, le=10_000)
    chunk_overlap: int = Field(default=300, ge=0)
    batch_size: int = Field(default=100, ge=1)
    text_preview_length: int = Field(default=400, ge=1)

    @model_validator(mode="after")
    def _check_overlap(self) -> IngestionSettings:
        if self.chunk_overlap >= self.chunk_size:
            msg = "chunk_overlap must be smaller than chunk_size"
            raise ValueError(msg)
        return self


class PostgresSettings(BaseAppSettings):
    """Postgres connection details for the site record sink."""

    model_config = SettingsConfigDict(
        env_prefix="postgres_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    host: str = "localhost"
    port: int = Field(default=5432, ge=1, le=65535)
    database: str = Field(
        default="askit",
        validation_alias=AliasChoices("postgres_database", "postgres_db"),
    )
    user: str = "askit"
    password: str = "changeme"
    sslmode: str = "prefer"
    sites_table: str = "websites"

    @cached_property
    def dsn(self) -> str:
        """Return a libpq compatible DSN string."""

        return (
            f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"
            f"?sslmode={self.sslmode}"
        )


class TelemetrySettings(BaseAppSettings):
    """Shared telemetry configuration."""

    model_config = SettingsConfigDict(
        env_prefix="otel_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    exporter_endpoint: str | None = None
    exporter_headers: str | None = None
    metrics_host: str = "0.0.0.0"
    metrics_port: int | None = None


class AppSettings(BaseAppSettings):
    """Top level settings object used by services."""

    redis: RedisSettings = Field(default_factory=RedisSettings)
    qdrant: QdrantSettings = Field(default_factory=QdrantSettings)
    openai: OpenAISettings = Field(default_factory=OpenAISettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    crawler: CrawlerSettings = Field(default_factory=CrawlerSettings)
    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    ingestion: IngestionSettings = Field(default_factory=IngestionSettings)
    postgres: PostgresSettings = Field(default_factory=PostgresSettings)
    telemetry: TelemetrySettings = Field(default_factory=TelemetrySettings)

    @classmethod
    def load(cls, **kwargs: Any) -> AppSettings:
        """Helper factory that mirrors BaseSettings semantics."""

        return cls(**kwargs)
