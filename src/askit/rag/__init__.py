"""Retrieval augmented generation primitives."""

from .answer import Answer, AnswerEngine, normalize_website_filter
from .chunking import Chunk, ChunkingConfig, ChunkingError, chunk_text
from .embeddings import EmbeddingClient
from .errors import (
    EmbeddingError,
    GenerationError,
    ProviderErrorKind,
    VectorStoreError,
    VectorStoreErrorKind,
)
from .generation import GenerationClient
from .vector_store import (
    QdrantVectorStore,
    RecordMetadata,
    RetrievalHit,
    VectorRecord,
    VectorStore,
    build_record_id,
)

__all__ = [
    "Answer",
    "AnswerEngine",
    "Chunk",
    "ChunkingConfig",
    "ChunkingError",
    "EmbeddingClient",
    "EmbeddingError",
    "GenerationClient",
    "GenerationError",
    "ProviderErrorKind",
    "QdrantVectorStore",
    "RecordMetadata",
    "RetrievalHit",
    "VectorRecord",
    "VectorStore",
    "VectorStoreError",
    "VectorStoreErrorKind",
    "build_record_id",
    "chunk_text",
    "normalize_website_filter",
]
