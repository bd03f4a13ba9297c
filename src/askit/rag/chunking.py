"""Fixed-size overlapping text windows."""

from __future__ import annotations

from dataclasses import dataclass

from askit.core.errors import ValidationError

MAX_CHUNK_SIZE = 10_000
DEFAULT_CHUNK_SIZE = 1600
DEFAULT_OVERLAP = 300


class ChunkingError(ValidationError):
    """Raised when chunking parameters or input text are invalid."""


@dataclass(slots=True, frozen=True)
class ChunkingConfig:
    """Window size and overlap, both measured in characters."""

    chunk_size: int = DEFAULT_CHUNK_SIZE
    overlap: int = DEFAULT_OVERLAP

    def __post_init__(self) -> None:
        if not isinstance(self.chunk_size, int) or not 1 <= self.chunk_size <= MAX_CHUNK_SIZE:
            raise ChunkingError(
                f"chunk_size must be between 1 and {MAX_CHUNK_SIZE}",
                details={"chunk_size": self.chunk_size},
            )
        if not isinstance(self.overlap, int) or self.overlap < 0:
            raise ChunkingError(
                "overlap must be non-negative", details={"overlap": self.overlap}
            )
        if self.overlap >= self.chunk_size:
            raise ChunkingError(
                "overlap must be smaller than chunk_size",
                details={"chunk_size": self.chunk_size, "overlap": self.overlap},
            )

    @property
    def stride(self) -> int:
        return self.chunk_size - self.overlap


@dataclass(slots=True, frozen=True)
class Chunk:
    """A trimmed window of page text and its position in the page."""

    index: int
    text: str


def chunk_text(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_OVERLAP,
) -> list[Chunk]:
    """Split ``text`` into windows starting at ``0, S-O, 2(S-O), ...``.

    Each window is trimmed and whitespace-only windows are dropped; indices
    stay contiguous over the windows that are kept.
    """

    config = ChunkingConfig(chunk_size=chunk_size, overlap=overlap)
    if not isinstance(text, str) or not text:
        raise ChunkingError("text must be a non-empty string")

    chunks: list[Chunk] = []
    for start in range(0, len(text), config.stride):
        window = text[start : start + config.chunk_size].strip()
        if window:
            chunks.append(Chunk(index=len(chunks), text=window))
    return chunks
