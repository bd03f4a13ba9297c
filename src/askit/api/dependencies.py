"""Dependency wiring for the askit FastAPI application."""

from __future__ import annotations

import logging
from functools import lru_cache

from askit.core.config import AppSettings
from askit.crawl.policy import DnsPolicyGate
from askit.ingestion.producer import IngestionProducer
from askit.rag.answer import AnswerEngine
from askit.rag.embeddings import EmbeddingClient
from askit.rag.generation import GenerationClient
from askit.rag.vector_store import QdrantVectorStore

logger = logging.getLogger(__name__)


@lru_cache
def get_settings() -> AppSettings:
    """Return cached ``AppSettings`` instance."""

    return AppSettings.load()


@lru_cache
def get_producer() -> IngestionProducer:
    settings = get_settings()
    return IngestionProducer(settings.redis, gate=DnsPolicyGate())


@lru_cache
def get_embedding_client() -> EmbeddingClient:
    return EmbeddingClient(get_settings().openai)


@lru_cache
def get_vector_store() -> QdrantVectorStore:
    return QdrantVectorStore(get_settings().qdrant)


@lru_cache
def get_generation_client() -> GenerationClient:
    settings = get_settings()
    return GenerationClient(settings.openai, settings.llm)


@lru_cache
def get_answer_engine() -> AnswerEngine:
    return AnswerEngine(
        embedder=get_embedding_client(),
        vector_store=get_vector_store(),
        generator=get_generation_client(),
        llm=get_settings().llm,
    )


async def close_clients() -> None:
    """Close the clients created by the cached factories above."""

    if get_producer.cache_info().currsize:
        await get_producer().close()
    if get_vector_store.cache_info().currsize:
        await get_vector_store().close()
    if get_embedding_client.cache_info().currsize:
        await get_embedding_client().close()
    if get_generation_client.cache_info().currsize:
        await get_generation_client().close()
    logger.info("api clients closed")
