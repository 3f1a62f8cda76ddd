"""
Document-side data models.

Documents are the unit a user uploads. Ingestion turns one into a set of
chunk records (text + embedding); search returns chunk matches.

Two kinds of document are not files at all: each user gets a lazily
created "web chat" and "all documents" virtual document so that every
thread can point at exactly one document row. They are told apart from
real uploads by sentinel MIME types.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4())


class DocumentStatus(str, Enum):
    """Lifecycle: queued → processing → ready | failed."""

    QUEUED = "queued"
    PROCESSING = "processing"
    READY = "ready"
    FAILED = "failed"


WEB_CHAT_MIME = "application/x-docchat-web-chat"
ALL_DOCUMENTS_MIME = "application/x-docchat-all-documents"


class DocumentKind(str, Enum):
    FILE = "file"
    WEB_CHAT = "web_chat"
    ALL_DOCUMENTS = "all_documents"

    @classmethod
    def from_mime(cls, mime_type: str) -> "DocumentKind":
        if mime_type == WEB_CHAT_MIME:
            return cls.WEB_CHAT
        if mime_type == ALL_DOCUMENTS_MIME:
            return cls.ALL_DOCUMENTS
        return cls.FILE


# Title, storage-path suffix, MIME type for each virtual kind
VIRTUAL_DOCUMENTS = {
    DocumentKind.WEB_CHAT: ("웹 검색 대화", "web-chat", WEB_CHAT_MIME),
    DocumentKind.ALL_DOCUMENTS: ("모든 문서 대화", "all-docs-chat", ALL_DOCUMENTS_MIME),
}


class Document(BaseModel):
    """An uploaded file (or a virtual chat target) owned by one user."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=new_id)
    owner_id: str
    title: str
    storage_path: str
    mime_type: str
    size_bytes: int = 0
    status: DocumentStatus = DocumentStatus.QUEUED
    error_message: Optional[str] = None
    is_shared: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def kind(self) -> DocumentKind:
        return DocumentKind.from_mime(self.mime_type)

    @property
    def is_virtual(self) -> bool:
        return self.kind != DocumentKind.FILE

    def visible_to(self, user_id: str) -> bool:
        return self.owner_id == user_id or self.is_shared


class ChunkRecord(BaseModel):
    """One embedded window of a document's text."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=new_id)
    document_id: str
    owner_id: str
    content: str
    embedding: list[float]
    metadata: dict[str, Any] = Field(default_factory=dict)


class ChunkMatch(BaseModel):
    """A row returned by vector search."""

    id: str
    document_id: str
    content: str
    similarity: float = Field(description="Cosine similarity in [-1, 1]")
    doc_title: Optional[str] = None


class FaqEmbedding(BaseModel):
    """Entry of the auxiliary FAQ corpus, maintained outside this service."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    faq_id: Optional[str] = None
    content: Optional[str] = None
    embedding: Optional[list[float]] = None
    metadata: Optional[dict[str, Any]] = None


class ScoredChunk(BaseModel):
    """
    A passage selected for the prompt context.

    Comes either from document search or from the FAQ corpus; origin tells
    which. rank is the 0-based position in the final context list.
    """

    id: str
    content: str
    score: float
    rank: int = 0
    doc_title: Optional[str] = None
    origin: str = "document"
