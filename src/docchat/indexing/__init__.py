"""
Indexing building blocks: extraction, chunking, embedding.

The pipeline and DocumentService sit on top of the ingestion graph and are
imported from their modules directly:
    from docchat.indexing.pipeline import IngestionPipeline
    from docchat.indexing.documents import DocumentService
"""

from .chunking import FixedWindowChunker, get_chunker, normalize_text
from .embeddings import EmbeddingClient
from .extraction import (
    PyMuPDFTextStrategy,
    PypdfTextStrategy,
    TextExtractor,
    VisionOcrStrategy,
    detect_kind,
)

__all__ = [
    "EmbeddingClient",
    "FixedWindowChunker",
    "PyMuPDFTextStrategy",
    "PypdfTextStrategy",
    "TextExtractor",
    "VisionOcrStrategy",
    "detect_kind",
    "get_chunker",
    "normalize_text",
]
