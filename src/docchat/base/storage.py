"""
Abstract base classes for persistence.

BaseDocumentStore covers the relational + vector side (documents, threads,
messages, chunks, FAQ rows and the k-NN search primitive). BaseBlobStore
covers uploaded file bytes. Implementations live in docchat.storage.

Stores do not enforce ownership; callers check Document.visible_to() or
compare owner_id themselves. Implementations raise PersistenceError /
BlobStoreError for backend failures.
"""

from abc import ABC, abstractmethod
from typing import Optional

from docchat.models import (
    ChunkMatch,
    ChunkRecord,
    Document,
    DocumentStatus,
    FaqEmbedding,
    Message,
    Thread,
)


class BaseDocumentStore(ABC):

    # -- documents ---------------------------------------------------------

    @abstractmethod
    def get_document(self, document_id: str) -> Optional[Document]:
        ...

    @abstractmethod
    def insert_document(self, document: Document) -> Document:
        """Insert a new row. Raises PersistenceError if the owner already has a virtual document of the same kind."""
        ...

    @abstractmethod
    def set_document_status(
        self,
        document_id: str,
        status: DocumentStatus,
        error_message: Optional[str] = None,
    ) -> None:
        """Set status and error_message (None clears it) and bump updated_at."""
        ...

    @abstractmethod
    def claim_document(self, document_id: str) -> bool:
        """
        Atomically move a document to 'processing'.

        Returns False, without changing anything, when the document is
        already processing. Clears any previous error_message.
        """
        ...

    @abstractmethod
    def delete_document(self, document_id: str) -> None:
        """Delete the document and everything hanging off it (chunks, threads, messages)."""
        ...

    @abstractmethod
    def find_document_by_mime(self, owner_id: str, mime_type: str) -> Optional[Document]:
        """Lookup used for the per-user virtual documents."""
        ...

    @abstractmethod
    def count_ready_documents(self, user_id: str) -> int:
        """Ready, non-virtual documents the user owns or that are shared."""
        ...

    # -- chunks ------------------------------------------------------------

    @abstractmethod
    def delete_chunks(self, document_id: str) -> None:
        ...

    @abstractmethod
    def insert_chunks(self, records: list[ChunkRecord]) -> None:
        ...

    @abstractmethod
    def search_chunks(
        self,
        query_embedding: list[float],
        user_id: str,
        document_id: Optional[str],
        k: int,
        threshold: float,
    ) -> list[ChunkMatch]:
        """
        k-NN over chunk embeddings by cosine similarity.

        document_id set: only that document. document_id None: every ready,
        non-virtual document visible to user_id. Results have
        similarity >= threshold, ordered by similarity descending.
        """
        ...

    @abstractmethod
    def list_faq_embeddings(self, limit: int) -> list[FaqEmbedding]:
        ...

    # -- threads -----------------------------------------------------------

    @abstractmethod
    def get_thread(self, thread_id: str) -> Optional[Thread]:
        ...

    @abstractmethod
    def insert_thread(self, thread: Thread) -> Thread:
        ...

    @abstractmethod
    def update_thread_title(self, thread_id: str, title: str) -> None:
        ...

    @abstractmethod
    def delete_thread(self, thread_id: str) -> None:
        ...

    # -- messages ----------------------------------------------------------

    @abstractmethod
    def insert_message(self, message: Message) -> Message:
        ...

    @abstractmethod
    def recent_messages(self, thread_id: str, limit: int) -> list[Message]:
        """Last `limit` user/assistant messages of the thread, oldest first."""
        ...

    @abstractmethod
    def list_messages(self, thread_id: str) -> list[Message]:
        """Every message of the thread, oldest first."""
        ...


class BaseBlobStore(ABC):

    @abstractmethod
    def upload(self, path: str, data: bytes, content_type: Optional[str] = None) -> None:
        ...

    @abstractmethod
    def download(self, path: str) -> bytes:
        ...

    @abstractmethod
    def delete(self, paths: list[str]) -> None:
        ...

    @abstractmethod
    def signed_url(self, path: str, expires_in: int) -> str:
        """Time-limited URL that lets a browser fetch the object directly."""
        ...
