"""Question answering grounded in indexed website content."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol
from urllib.parse import urlparse

from askit.core import metrics
from askit.core.config import LLMSettings
from askit.core.errors import ValidationError
from askit.rag.vector_store import RetrievalHit, VectorStore
from askit.utils.tracing import start_span

logger = logging.getLogger(__name__)

MIN_TOP_K = 1
MAX_TOP_K = 50
DEFAULT_TOP_K = 20

CONTEXT_SEPARATOR = "\n\n---\n\n"
FALLBACK_PHRASE = (
    "I can't find details on that, but I can help with other topics from the website."
)
GENERATION_FALLBACK = "I couldn't generate an answer at this time."


class Embedder(Protocol):
    async def embed(self, text: str) -> list[float]:
        ...


class Generator(Protocol):
    async def generate(self, prompt: str) -> str | None:
        ...


@dataclass(slots=True)
class Answer:
    answer: str
    sources: list[str] = field(default_factory=list)
    websites: list[str] = field(default_factory=list)
    website_filter: str | None = None
    hits: list[RetrievalHit] = field(default_factory=list)
    context_used: int = 0


def normalize_website_filter(website: str) -> str:
    """Reduce a user-supplied site to the hostname stored on records.

    ``https://example.com/docs`` and ``example.com/`` both become
    ``example.com``; inputs that fail to parse keep their path with only the
    scheme and trailing slash removed.
    """

    value = website.strip()
    if "://" in value:
        hostname = urlparse(value).hostname
        if hostname:
            return hostname.rstrip("/")
    for prefix in ("https://", "http://"):
        if value.startswith(prefix):
            value = value[len(prefix) :]
            break
    return value.rstrip("/")


def no_match_message(website_filter: str | None) -> str:
    if website_filter:
        return (
            "I don't have information to answer that question based on content "
            f"from {website_filter}."
        )
    return "I don't have information to answer that question based on your indexed websites."


def build_context(hits: list[RetrievalHit]) -> str:
    blocks = [
        f"Website: {hit.metadata.website or 'Unknown'}\n"
        f"URL: {hit.metadata.url or 'Unknown'}\n"
        f"{hit.metadata.text_preview or 'No preview available'}"
        for hit in hits
    ]
    return CONTEXT_SEPARATOR.join(blocks)


def _unique(values: list[str]) -> list[str]:
    return list(dict.fromkeys(value for value in values if value))


def build_prompt(
    question: str,
    context: str,
    *,
    websites: list[str],
    website: str | None = None,
    assistant_name: str = "Askit",
) -> str:
    if website:
        scope = f"(filtered to {website})"
    else:
        plural = "" if len(websites) == 1 else "s"
        scope = f"(from {len(websites)} website{plural}: {', '.join(websites)})"
    return (
        f"You are {assistant_name}, a friendly and expert virtual assistant for "
        f"{website or 'this website'}.\n"
        "- Answer based *only* on the context below.\n"
        "- Be concise for simple questions, and detailed (2-4 sentences) for complex ones.\n"
        f'- If the answer isn\'t in the context, say "{FALLBACK_PHRASE}" '
        'Do not say "I don\'t know."\n\n'
        f"Context {scope}:\n---\n{context}\n---\n\n"
        f"Question: {question}\n\nAnswer:"
    )


class AnswerEngine:
    """Embed a question, retrieve tenant-scoped chunks and generate an answer."""

    def __init__(
        self,
        *,
        embedder: Embedder,
        vector_store: VectorStore,
        generator: Generator,
        llm: LLMSettings | None = None,
    ) -> None:
        self._embedder = embedder
        self._vector_store = vector_store
        self._generator = generator
        self._llm = llm or LLMSettings()

    async def answer(
        self,
        question: str,
        tenant_key: str,
        website: str | None = None,
        top_k: int = DEFAULT_TOP_K,
    ) -> Answer:
        if not isinstance(question, str) or not question.strip():
            raise ValidationError("invalid question: must be a non-empty string")
        if not MIN_TOP_K <= top_k <= MAX_TOP_K:
            raise ValidationError(
                f"top_k must be between {MIN_TOP_K} and {MAX_TOP_K}",
                details={"top_k": top_k},
            )
        if not tenant_key:
            raise ValidationError("tenant key is required")

        filters = {"tenant_key": tenant_key}
        website_filter = normalize_website_filter(website) if website else None
        if website_filter:
            filters["website"] = website_filter

        with start_span("answer", top_k=top_k, filtered=bool(website_filter)):
            vector = await self._embedder.embed(question)
            hits = await self._vector_store.query(vector, top_k, filters)

            if not hits:
                metrics.ANSWERS.labels(outcome="no_match").inc()
                logger.info(
                    "no indexed content matched question",
                    extra={"tenant_key": tenant_key, "website": website_filter},
                )
                return Answer(
                    answer=no_match_message(website_filter),
                    website_filter=website_filter,
                )

            sources = _unique([hit.metadata.url for hit in hits])
            websites = _unique([hit.metadata.website for hit in hits])
            prompt = build_prompt(
                question,
                build_context(hits),
                websites=websites,
                website=website,
                assistant_name=self._llm.assistant_name,
            )
            text = await self._generator.generate(prompt)

        if text is None:
            metrics.ANSWERS.labels(outcome="empty").inc()
            text = GENERATION_FALLBACK
        else:
            metrics.ANSWERS.labels(outcome="answered").inc()

        logger.info(
            "answer generated",
            extra={"tenant_key": tenant_key, "hits": len(hits), "sources": len(sources)},
        )
        return Answer(
            answer=text,
            sources=sources,
            websites=websites,
            website_filter=website_filter,
            hits=hits,
            context_used=len(hits),
        )
