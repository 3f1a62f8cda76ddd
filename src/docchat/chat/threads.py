"""
Threads and the per-user virtual documents they hang off.

Every thread points at exactly one document row. Web chats and
"all my documents" chats point at a virtual document that is created the
first time a user needs it and reused afterwards.

Titles start as a placeholder (or the first question) and are replaced
while they still look like a placeholder; see should_replace_title().
"""

import logging
from typing import Optional

from docchat.base.storage import BaseDocumentStore
from docchat.chat.routing import NO_READY_DOCUMENTS
from docchat.config import ChatConfig
from docchat.errors import NotFoundOrForbidden, PersistenceError, ValidationError
from docchat.models import (
    VIRTUAL_DOCUMENTS,
    ChatMode,
    Document,
    DocumentKind,
    DocumentStatus,
    Thread,
)
from docchat.utils.helpers import collapse_whitespace

logger = logging.getLogger(__name__)

NEW_CHAT_TITLE = "새 대화"
NEW_WEB_CHAT_TITLE = "새 웹 검색 대화"
NEW_ALL_DOCUMENTS_CHAT_TITLE = "내 문서 전체 대화"
THREAD_NOT_FOUND = "스레드를 찾을 수 없거나 접근 권한이 없습니다."


def document_chat_title(document: Document) -> str:
    return f"{document.title[:40]} 대화"


def placeholder_title(document: Document) -> str:
    """Title for a new thread whose question cannot be used as one."""
    if document.kind == DocumentKind.WEB_CHAT:
        return NEW_WEB_CHAT_TITLE
    if document.kind == DocumentKind.ALL_DOCUMENTS:
        return NEW_ALL_DOCUMENTS_CHAT_TITLE
    return document_chat_title(document)


def should_replace_title(title: Optional[str], document: Document) -> bool:
    """True while the thread still carries an empty or default title."""
    if not title or not title.strip():
        return True
    return title in (
        NEW_CHAT_TITLE,
        NEW_WEB_CHAT_TITLE,
        NEW_ALL_DOCUMENTS_CHAT_TITLE,
        document_chat_title(document),
    )


class ThreadManager:

    def __init__(self, store: BaseDocumentStore, config: ChatConfig = None):
        self.store = store
        self.config = config or ChatConfig()

    # ------------------------------------------------------------------
    # Virtual documents
    # ------------------------------------------------------------------

    def ensure_virtual_document(self, user_id: str, kind: DocumentKind) -> Document:
        """Return the user's virtual document of `kind`, creating it on first use."""
        title, suffix, mime = VIRTUAL_DOCUMENTS[kind]
        existing = self.store.find_document_by_mime(user_id, mime)
        if existing is not None:
            return existing

        document = Document(
            owner_id=user_id,
            title=title,
            storage_path=f"{user_id}/__virtual__/{suffix}",
            mime_type=mime,
            size_bytes=0,
            status=DocumentStatus.READY,
        )
        try:
            created = self.store.insert_document(document)
        except PersistenceError:
            # Lost a race with a concurrent request; use the winner's row
            existing = self.store.find_document_by_mime(user_id, mime)
            if existing is None:
                raise
            return existing

        logger.info("Created %s virtual document for %s", kind.value, user_id)
        return created

    # ------------------------------------------------------------------
    # Threads
    # ------------------------------------------------------------------

    def title_candidate(self, text: str) -> str:
        return collapse_whitespace(text)[:self.config.title_candidate_chars]

    def get_thread(self, user_id: str, thread_id: str) -> Thread:
        thread = self.store.get_thread(thread_id)
        if thread is None or thread.owner_id != user_id:
            raise NotFoundOrForbidden(THREAD_NOT_FOUND)
        return thread

    def start_thread(self, user_id: str, document: Document, title: str) -> Thread:
        return self.store.insert_thread(Thread(document_id=document.id, owner_id=user_id, title=title))

    def create_thread(self, user_id: str, mode: ChatMode, title: Optional[str] = None) -> Thread:
        """
        Explicit "new chat".

        mode=web binds the web virtual document; anything else binds the
        all-documents virtual document and needs at least one ready document.
        """
        requested = self.title_candidate(title or "")
        if mode == ChatMode.WEB:
            document = self.ensure_virtual_document(user_id, DocumentKind.WEB_CHAT)
            default = NEW_WEB_CHAT_TITLE
        else:
            if self.store.count_ready_documents(user_id) <= 0:
                raise ValidationError(NO_READY_DOCUMENTS)
            document = self.ensure_virtual_document(user_id, DocumentKind.ALL_DOCUMENTS)
            default = NEW_ALL_DOCUMENTS_CHAT_TITLE

        return self.start_thread(user_id, document, requested or default)

    def delete_thread(self, user_id: str, thread_id: str) -> None:
        thread = self.get_thread(user_id, thread_id)
        self.store.delete_thread(thread.id)
        logger.info("Deleted thread %s", thread.id)

    def update_title(self, thread_id: str, title: str) -> None:
        self.store.update_thread_title(thread_id, title)
