from __future__ import annotations

import pytest

from askit.rag.chunking import ChunkingConfig, ChunkingError, chunk_text

pytestmark = pytest.mark.unit


def test_default_chunking_config() -> None:
    config = ChunkingConfig()
    assert config.chunk_size == 1600
    assert config.overlap == 300
    assert config.stride == 1300


def test_chunk_text_produces_overlapping_windows() -> None:
    chunks = chunk_text("abcdefghij", chunk_size=4, overlap=1)

    assert [chunk.text for chunk in chunks] == ["abcd", "defg", "ghij", "j"]
    assert [chunk.index for chunk in chunks] == [0, 1, 2, 3]


def test_chunk_text_short_text_yields_single_chunk() -> None:
    chunks = chunk_text("  short page text  ")

    assert len(chunks) == 1
    assert chunks[0].text == "short page text"


def test_chunk_text_drops_blank_windows_and_keeps_indices_contiguous() -> None:
    text = "abcd" + " " * 8 + "wxyz"

    chunks = chunk_text(text, chunk_size=4, overlap=0)

    assert [chunk.text for chunk in chunks] == ["abcd", "wxyz"]
    assert [chunk.index for chunk in chunks] == [0, 1]


def test_every_chunk_respects_size_limit() -> None:
    text = "word " * 2000

    chunks = chunk_text(text, chunk_size=500, overlap=100)

    assert all(len(chunk.text) <= 500 for chunk in chunks)
    assert chunks[0].text.startswith("word word")


@pytest.mark.parametrize(
    ("chunk_size", "overlap"),
    [(0, 0), (10_001, 0), (100, -1), (100, 100), (100, 150)],
)
def test_invalid_parameters_are_rejected(chunk_size: int, overlap: int) -> None:
    with pytest.raises(ChunkingError):
        chunk_text("some text", chunk_size=chunk_size, overlap=overlap)


def test_empty_text_is_rejected() -> None:
    with pytest.raises(ChunkingError):
        chunk_text("")
