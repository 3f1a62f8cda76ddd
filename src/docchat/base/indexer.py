"""
Abstract base classes for text extraction and chunking.

Extraction and chunking are separate steps so either can be swapped on
its own:
    text = extractor.extract(data, "application/pdf")
    chunks = FixedWindowChunker(config).split_text(text)

PDF extraction is itself a chain of strategies (text layer, renderer, OCR),
each of which may decline by returning None.
"""

from abc import ABC, abstractmethod
from typing import Optional

from docchat.config import ChunkingConfig


class BaseExtractionStrategy(ABC):
    """
    One way of getting text out of a PDF.

    Strategies are tried in order; the first accepted result wins.
    extract() returns None (or raises) when the strategy has nothing
    usable, and accept() decides whether a non-empty result is good
    enough to stop the chain.
    """

    name: str = "base"

    @abstractmethod
    def extract(self, data: bytes) -> Optional[str]:
        """
        Try to extract text from raw PDF bytes.

        Returns:
            Extracted text, or None when this strategy cannot help.
        """
        ...

    def accept(self, text: str) -> bool:
        return bool(text.strip())


class BaseChunker(ABC):
    """
    Contract for text chunkers.

    Every chunker receives a ChunkingConfig so the caller controls
    chunk_size and overlap.
    """

    def __init__(self, config: ChunkingConfig):
        self.config = config

    @abstractmethod
    def split_text(self, text: str) -> list[str]:
        """
        Split text into chunks suitable for embedding.

        Returns:
            Ordered list of non-empty chunk strings.
        """
        ...
