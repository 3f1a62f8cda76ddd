"""Tests for chunking (pure string handling, no API calls)."""

from docchat.config import ChunkingConfig
from docchat.indexing.chunking import FixedWindowChunker, get_chunker, normalize_text


def test_fixed_windows_with_overlap(chunking_config):
    """2000 chars at 900/150 → windows starting at 0, 750 and 1500."""
    text = "".join(chr(ord("a") + i % 26) for i in range(2000))
    chunks = FixedWindowChunker(chunking_config).split_text(text)

    assert len(chunks) == 3
    assert [len(c) for c in chunks] == [900, 900, 500]
    assert chunks[1] == text[750:1650]
    assert chunks[2] == text[1500:]


def test_consecutive_chunks_share_overlap(chunking_config):
    text = "".join(chr(ord("a") + i % 26) for i in range(2000))
    chunks = FixedWindowChunker(chunking_config).split_text(text)

    for previous, current in zip(chunks, chunks[1:]):
        assert previous[-150:] == current[:150]


def test_chunks_reconstruct_text(chunking_config):
    text = "문장 하나. " * 400
    chunks = FixedWindowChunker(chunking_config).split_text(text)

    rebuilt = chunks[0] + "".join(c[150:] for c in chunks[1:])
    assert rebuilt == normalize_text(text)


def test_short_text_single_chunk(chunking_config):
    chunks = FixedWindowChunker(chunking_config).split_text("짧은 문서입니다.")
    assert chunks == ["짧은 문서입니다."]


def test_no_trailing_overlap_only_chunk():
    """A window that reaches the end stops the loop."""
    chunker = FixedWindowChunker(ChunkingConfig(chunk_size=10, chunk_overlap=5))
    chunks = chunker.split_text("abcdefghij")
    assert chunks == ["abcdefghij"]


def test_empty_and_whitespace_text(chunking_config):
    chunker = FixedWindowChunker(chunking_config)
    assert chunker.split_text("") == []
    assert chunker.split_text("   \n\t  ") == []
    assert chunker.split_text(None) == []


def test_whitespace_only_windows_dropped():
    """The dropped blank window is the one case where chunks do not rebuild the text."""
    text = "a" + "\n" * 20 + "b"
    chunker = FixedWindowChunker(ChunkingConfig(chunk_size=10, chunk_overlap=0))
    chunks = chunker.split_text(text)

    assert chunks == ["a" + "\n" * 9, "\nb"]
    assert "".join(chunks) != normalize_text(text)


def test_normalize_text():
    assert normalize_text("  a\r\nb\rc\t\td    e  ") == "a\nb\nc d e"


def test_get_chunker_returns_fixed_window(chunking_config):
    assert isinstance(get_chunker(chunking_config), FixedWindowChunker)
