"""
In-process document store.

Dict-backed implementation of BaseDocumentStore for development and tests.
Search is a brute-force cosine similarity over every stored chunk with
numpy. A single lock guards all state so claim_document() is atomic and
a second virtual document per (owner, kind) is rejected on insert.
Objects are copied on the way in and out so callers cannot mutate
stored state.
"""

import threading
from typing import Optional

from docchat.base.storage import BaseDocumentStore
from docchat.errors import PersistenceError
from docchat.models import (
    ChunkMatch,
    ChunkRecord,
    Document,
    DocumentStatus,
    FaqEmbedding,
    Message,
    Role,
    Thread,
)
from docchat.models.document import utcnow
from docchat.utils.helpers import cosine_scores


class MemoryDocumentStore(BaseDocumentStore):

    def __init__(self):
        self._lock = threading.RLock()
        self.documents: dict[str, Document] = {}
        self.chunks: dict[str, ChunkRecord] = {}
        self.threads: dict[str, Thread] = {}
        self.messages: dict[str, Message] = {}
        self.faq: list[FaqEmbedding] = []

    # -- documents ---------------------------------------------------------

    def get_document(self, document_id: str) -> Optional[Document]:
        with self._lock:
            document = self.documents.get(document_id)
            return document.model_copy() if document else None

    def insert_document(self, document: Document) -> Document:
        with self._lock:
            if document.is_virtual and any(
                d.owner_id == document.owner_id and d.mime_type == document.mime_type
                for d in self.documents.values()
            ):
                raise PersistenceError(
                    f"duplicate virtual document {document.mime_type} for {document.owner_id}"
                )
            self.documents[document.id] = document.model_copy()
        return document

    def set_document_status(self, document_id, status, error_message=None) -> None:
        with self._lock:
            document = self.documents.get(document_id)
            if document is None:
                return
            self.documents[document_id] = document.model_copy(update={
                "status": status,
                "error_message": error_message,
                "updated_at": utcnow(),
            })

    def claim_document(self, document_id: str) -> bool:
        with self._lock:
            document = self.documents.get(document_id)
            if document is None or document.status == DocumentStatus.PROCESSING:
                return False
            self.set_document_status(document_id, DocumentStatus.PROCESSING, None)
            return True

    def delete_document(self, document_id: str) -> None:
        with self._lock:
            self.documents.pop(document_id, None)
            self.delete_chunks(document_id)
            for thread_id in [t.id for t in self.threads.values() if t.document_id == document_id]:
                self.delete_thread(thread_id)

    def find_document_by_mime(self, owner_id: str, mime_type: str) -> Optional[Document]:
        with self._lock:
            matches = [
                d for d in self.documents.values()
                if d.owner_id == owner_id and d.mime_type == mime_type
            ]
            if not matches:
                return None
            return min(matches, key=lambda d: d.created_at).model_copy()

    def _searchable_document_ids(self, user_id: str) -> set[str]:
        return {
            d.id for d in self.documents.values()
            if d.visible_to(user_id) and d.status == DocumentStatus.READY and not d.is_virtual
        }

    def count_ready_documents(self, user_id: str) -> int:
        with self._lock:
            return len(self._searchable_document_ids(user_id))

    # -- chunks ------------------------------------------------------------

    def delete_chunks(self, document_id: str) -> None:
        with self._lock:
            for chunk_id in [c.id for c in self.chunks.values() if c.document_id == document_id]:
                del self.chunks[chunk_id]

    def insert_chunks(self, records: list[ChunkRecord]) -> None:
        with self._lock:
            for record in records:
                self.chunks[record.id] = record.model_copy()

    def search_chunks(self, query_embedding, user_id, document_id, k, threshold) -> list[ChunkMatch]:
        with self._lock:
            if document_id is not None:
                allowed = {document_id}
            else:
                allowed = self._searchable_document_ids(user_id)
            candidates = [c for c in self.chunks.values() if c.document_id in allowed]
            titles = {d.id: d.title for d in self.documents.values()}

        scores = cosine_scores(query_embedding, [c.embedding for c in candidates])
        ranked = sorted(zip(candidates, scores), key=lambda pair: pair[1], reverse=True)
        return [
            ChunkMatch(
                id=chunk.id,
                document_id=chunk.document_id,
                content=chunk.content,
                similarity=float(score),
                doc_title=titles.get(chunk.document_id),
            )
            for chunk, score in ranked
            if score >= threshold
        ][:k]

    def list_faq_embeddings(self, limit: int) -> list[FaqEmbedding]:
        with self._lock:
            return [f.model_copy() for f in self.faq[:limit]]

    # -- threads -----------------------------------------------------------

    def get_thread(self, thread_id: str) -> Optional[Thread]:
        with self._lock:
            thread = self.threads.get(thread_id)
            return thread.model_copy() if thread else None

    def insert_thread(self, thread: Thread) -> Thread:
        with self._lock:
            self.threads[thread.id] = thread.model_copy()
        return thread

    def update_thread_title(self, thread_id: str, title: str) -> None:
        with self._lock:
            thread = self.threads.get(thread_id)
            if thread is not None:
                self.threads[thread_id] = thread.model_copy(update={"title": title})

    def delete_thread(self, thread_id: str) -> None:
        with self._lock:
            self.threads.pop(thread_id, None)
            for message_id in [m.id for m in self.messages.values() if m.thread_id == thread_id]:
                del self.messages[message_id]

    # -- messages ----------------------------------------------------------

    def insert_message(self, message: Message) -> Message:
        with self._lock:
            self.messages[message.id] = message.model_copy()
        return message

    def list_messages(self, thread_id: str) -> list[Message]:
        with self._lock:
            # dicts keep insertion order, which breaks created_at ties
            ordered = [m for m in self.messages.values() if m.thread_id == thread_id]
        return [m.model_copy() for m in sorted(ordered, key=lambda m: m.created_at)]

    def recent_messages(self, thread_id: str, limit: int) -> list[Message]:
        if limit <= 0:
            return []
        visible = [m for m in self.list_messages(thread_id) if m.role != Role.SYSTEM]
        return visible[-limit:]
