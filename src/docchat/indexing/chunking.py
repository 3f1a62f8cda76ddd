"""
Document chunking.

Takes extracted text and splits it into fixed-size, overlapping character
windows for embedding. Driven by ChunkingConfig.

Text is normalised first: line endings become "\\n", tabs become spaces,
runs of spaces collapse to one, and the result is trimmed. Newlines are
kept since they carry paragraph structure into the model context.

Usage:
    from docchat.indexing.chunking import get_chunker
    from docchat.config import ChunkingConfig

    chunker = get_chunker(ChunkingConfig(chunk_size=900, chunk_overlap=150))
    chunks = chunker.split_text(text)
"""

import re

from docchat.base.indexer import BaseChunker
from docchat.config import ChunkingConfig

_LINE_ENDINGS = re.compile(r"\r\n|\r")
_SPACE_RUNS = re.compile(r" {2,}")


def normalize_text(text: str) -> str:
    text = _LINE_ENDINGS.sub("\n", text)
    text = text.replace("\t", " ")
    text = _SPACE_RUNS.sub(" ", text)
    return text.strip()


class FixedWindowChunker(BaseChunker):
    """
    Sliding character window.

    Window i covers [i * step, i * step + chunk_size) of the normalised text,
    with step = chunk_size - chunk_overlap. Windows are not trimmed, so
    consecutive chunks share exactly chunk_overlap characters and the
    chunks laid end to end (minus overlaps) give back the normalised text.

    The one exception: windows that are only whitespace are dropped. When a
    run of blank lines fills a whole window, the chunks no longer rebuild
    the text and the neighbours of the dropped window do not overlap each
    other. The loop stops at the first window that reaches the end of the
    text, so there is no trailing chunk made purely of overlap.
    """

    def split_text(self, text: str) -> list[str]:
        clean = normalize_text(text or "")
        if not clean:
            return []

        size = self.config.chunk_size
        step = size - self.config.chunk_overlap

        chunks = []
        start = 0
        while start < len(clean):
            window = clean[start:start + size]
            if window.strip():
                chunks.append(window)
            if start + size >= len(clean):
                break
            start += step
        return chunks


def get_chunker(config: ChunkingConfig) -> BaseChunker:
    """Factory kept for symmetry with get_llm; fixed windows are the only strategy."""
    return FixedWindowChunker(config)
