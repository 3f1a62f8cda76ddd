"""
Storage backends.

SqlDocumentStore pulls in SQLAlchemy + pgvector and is imported from
docchat.storage.sql directly so the in-memory setup does not need them
loaded.
"""

from .blobs import LocalBlobStore, S3BlobStore
from .memory import MemoryDocumentStore

__all__ = ["LocalBlobStore", "MemoryDocumentStore", "S3BlobStore"]
