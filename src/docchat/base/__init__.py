from .auth import BaseAuthProvider
from .indexer import BaseChunker, BaseExtractionStrategy
from .storage import BaseBlobStore, BaseDocumentStore

__all__ = [
    "BaseAuthProvider",
    "BaseBlobStore",
    "BaseChunker",
    "BaseDocumentStore",
    "BaseExtractionStrategy",
]
