"""
PostgreSQL + pgvector document store.

Sync SQLAlchemy 2.0 engine, one short session per operation. Vector search
ranks chunks by pgvector cosine distance; similarity is reported as
1 - distance so it lives in [-1, 1] like everywhere else.

Usage:
    store = SqlDocumentStore("postgresql+psycopg://docchat:pw@localhost/docchat")
    store.init_schema()   # CREATE EXTENSION vector + create tables, once
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, delete, func, or_, select, text, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from docchat.base.storage import BaseDocumentStore
from docchat.errors import PersistenceError, RetrievalError
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
from docchat.storage.orm import (
    VIRTUAL_MIME_TYPES,
    Base,
    ChunkRow,
    DocumentRow,
    FaqEmbeddingRow,
    MessageRow,
    ThreadRow,
)

logger = logging.getLogger(__name__)


class SqlDocumentStore(BaseDocumentStore):

    def __init__(self, database_url: str, echo: bool = False):
        self.engine = create_engine(database_url, echo=echo, pool_pre_ping=True)
        self._sessions = sessionmaker(self.engine, expire_on_commit=False, autoflush=False)

    def init_schema(self) -> None:
        with self.engine.begin() as conn:
            conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
            Base.metadata.create_all(conn)
        logger.info("Database schema ready")

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self._sessions()
        try:
            with session.begin():
                yield session
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Database error: {exc}") from exc
        finally:
            session.close()

    # -- documents ---------------------------------------------------------

    def get_document(self, document_id: str) -> Optional[Document]:
        with self._session() as session:
            row = session.get(DocumentRow, document_id)
            return Document.model_validate(row) if row else None

    def insert_document(self, document: Document) -> Document:
        with self._session() as session:
            session.add(DocumentRow(**{**document.model_dump(), "status": document.status.value}))
        return document

    def set_document_status(self, document_id, status, error_message=None) -> None:
        with self._session() as session:
            session.execute(
                update(DocumentRow)
                .where(DocumentRow.id == document_id)
                .values(status=status.value, error_message=error_message, updated_at=func.now())
            )

    def claim_document(self, document_id: str) -> bool:
        with self._session() as session:
            result = session.execute(
                update(DocumentRow)
                .where(
                    DocumentRow.id == document_id,
                    DocumentRow.status != DocumentStatus.PROCESSING.value,
                )
                .values(
                    status=DocumentStatus.PROCESSING.value,
                    error_message=None,
                    updated_at=func.now(),
                )
            )
            return result.rowcount == 1

    def delete_document(self, document_id: str) -> None:
        with self._session() as session:
            session.execute(delete(DocumentRow).where(DocumentRow.id == document_id))

    def find_document_by_mime(self, owner_id: str, mime_type: str) -> Optional[Document]:
        with self._session() as session:
            row = session.scalars(
                select(DocumentRow)
                .where(DocumentRow.owner_id == owner_id, DocumentRow.mime_type == mime_type)
                .order_by(DocumentRow.created_at)
                .limit(1)
            ).first()
            return Document.model_validate(row) if row else None

    def _visible_ready(self, user_id: str):
        return (
            or_(DocumentRow.owner_id == user_id, DocumentRow.is_shared.is_(True)),
            DocumentRow.status == DocumentStatus.READY.value,
            DocumentRow.mime_type.not_in(VIRTUAL_MIME_TYPES),
        )

    def count_ready_documents(self, user_id: str) -> int:
        with self._session() as session:
            return session.scalar(
                select(func.count()).select_from(DocumentRow).where(*self._visible_ready(user_id))
            ) or 0

    # -- chunks ------------------------------------------------------------

    def delete_chunks(self, document_id: str) -> None:
        with self._session() as session:
            session.execute(delete(ChunkRow).where(ChunkRow.document_id == document_id))

    def insert_chunks(self, records: list[ChunkRecord]) -> None:
        with self._session() as session:
            session.add_all([
                ChunkRow(
                    id=r.id,
                    document_id=r.document_id,
                    owner_id=r.owner_id,
                    content=r.content,
                    embedding=r.embedding,
                    meta=r.metadata,
                )
                for r in records
            ])

    def search_chunks(self, query_embedding, user_id, document_id, k, threshold) -> list[ChunkMatch]:
        distance = ChunkRow.embedding.cosine_distance(query_embedding)
        stmt = (
            select(
                ChunkRow.id,
                ChunkRow.document_id,
                ChunkRow.content,
                DocumentRow.title,
                (1 - distance).label("similarity"),
            )
            .join(DocumentRow, DocumentRow.id == ChunkRow.document_id)
            .where(1 - distance >= threshold)
            .order_by(distance)
            .limit(k)
        )
        if document_id is not None:
            stmt = stmt.where(ChunkRow.document_id == document_id)
        else:
            stmt = stmt.where(*self._visible_ready(user_id))

        try:
            with self._session() as session:
                rows = session.execute(stmt).all()
        except PersistenceError as exc:
            message = str(exc)
            if "vector" in message and "does not exist" in message:
                raise RetrievalError(
                    "pgvector is not installed in this database; run SqlDocumentStore.init_schema()"
                ) from exc
            raise RetrievalError(message) from exc

        return [
            ChunkMatch(
                id=row.id,
                document_id=row.document_id,
                content=row.content,
                similarity=float(row.similarity),
                doc_title=row.title,
            )
            for row in rows
        ]

    def list_faq_embeddings(self, limit: int) -> list[FaqEmbedding]:
        with self._session() as session:
            rows = session.scalars(
                select(FaqEmbeddingRow).order_by(FaqEmbeddingRow.created_at.desc()).limit(limit)
            ).all()
            return [
                FaqEmbedding(
                    id=row.id,
                    faq_id=row.faq_id,
                    content=row.content,
                    embedding=list(row.embedding) if row.embedding is not None else None,
                    metadata=row.meta,
                )
                for row in rows
            ]

    # -- threads -----------------------------------------------------------

    def get_thread(self, thread_id: str) -> Optional[Thread]:
        with self._session() as session:
            row = session.get(ThreadRow, thread_id)
            return Thread.model_validate(row) if row else None

    def insert_thread(self, thread: Thread) -> Thread:
        with self._session() as session:
            session.add(ThreadRow(**thread.model_dump()))
        return thread

    def update_thread_title(self, thread_id: str, title: str) -> None:
        with self._session() as session:
            session.execute(update(ThreadRow).where(ThreadRow.id == thread_id).values(title=title))

    def delete_thread(self, thread_id: str) -> None:
        with self._session() as session:
            session.execute(delete(ThreadRow).where(ThreadRow.id == thread_id))

    # -- messages ----------------------------------------------------------

    def insert_message(self, message: Message) -> Message:
        with self._session() as session:
            session.add(MessageRow(
                id=message.id,
                thread_id=message.thread_id,
                owner_id=message.owner_id,
                role=message.role.value,
                content=message.content,
                sources=[s.model_dump(exclude_none=True) for s in message.sources],
                created_at=message.created_at,
            ))
        return message

    def recent_messages(self, thread_id: str, limit: int) -> list[Message]:
        if limit <= 0:
            return []
        with self._session() as session:
            rows = session.scalars(
                select(MessageRow)
                .where(MessageRow.thread_id == thread_id, MessageRow.role != Role.SYSTEM.value)
                .order_by(MessageRow.created_at.desc())
                .limit(limit)
            ).all()
            return [Message.model_validate(row) for row in reversed(rows)]

    def list_messages(self, thread_id: str) -> list[Message]:
        with self._session() as session:
            rows = session.scalars(
                select(MessageRow).where(MessageRow.thread_id == thread_id).order_by(MessageRow.created_at)
            ).all()
            return [Message.model_validate(row) for row in rows]
