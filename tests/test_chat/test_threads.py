"""Tests for ThreadManager and title helpers (memory store)."""

import threading
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock

import pytest

from docchat.chat.threads import (
    NEW_ALL_DOCUMENTS_CHAT_TITLE,
    NEW_WEB_CHAT_TITLE,
    ThreadManager,
    document_chat_title,
    placeholder_title,
    should_replace_title,
)
from docchat.errors import NotFoundOrForbidden, PersistenceError, ValidationError
from docchat.models import (
    ALL_DOCUMENTS_MIME,
    WEB_CHAT_MIME,
    ChatMode,
    DocumentKind,
    DocumentStatus,
)
from docchat.storage.memory import MemoryDocumentStore

from conftest import OTHER_USER_ID, USER_ID, add_document


class LookupBarrierStore(MemoryDocumentStore):
    """Holds the first `parties` lookups until all of them have run."""

    def __init__(self, parties: int):
        super().__init__()
        self.barrier = threading.Barrier(parties)
        self.pending = parties
        self._count_lock = threading.Lock()

    def find_document_by_mime(self, owner_id, mime_type):
        found = super().find_document_by_mime(owner_id, mime_type)
        with self._count_lock:
            wait = self.pending > 0
            self.pending -= 1
        if wait:
            self.barrier.wait(timeout=5)
        return found


@pytest.fixture
def threads(store, chat_config):
    return ThreadManager(store, chat_config)


class TestVirtualDocuments:

    def test_created_once_and_reused(self, threads, store):
        first = threads.ensure_virtual_document(USER_ID, DocumentKind.WEB_CHAT)
        second = threads.ensure_virtual_document(USER_ID, DocumentKind.WEB_CHAT)

        assert first.id == second.id
        assert first.mime_type == WEB_CHAT_MIME
        assert first.status == DocumentStatus.READY
        assert first.is_virtual
        assert len(store.documents) == 1

    def test_one_per_user_and_kind(self, threads):
        web = threads.ensure_virtual_document(USER_ID, DocumentKind.WEB_CHAT)
        all_docs = threads.ensure_virtual_document(USER_ID, DocumentKind.ALL_DOCUMENTS)
        other = threads.ensure_virtual_document(OTHER_USER_ID, DocumentKind.WEB_CHAT)

        assert len({web.id, all_docs.id, other.id}) == 3
        assert all_docs.mime_type == ALL_DOCUMENTS_MIME

    def test_concurrent_first_use_creates_one_row(self):
        # Both callers miss the lookup before either inserts
        store = LookupBarrierStore(parties=2)
        threads = ThreadManager(store)

        with ThreadPoolExecutor(max_workers=2) as pool:
            futures = [
                pool.submit(threads.ensure_virtual_document, USER_ID, DocumentKind.WEB_CHAT)
                for _ in range(2)
            ]
            documents = [f.result(timeout=10) for f in futures]

        web_rows = [d for d in store.documents.values() if d.mime_type == WEB_CHAT_MIME]
        assert len(web_rows) == 1
        assert {d.id for d in documents} == {web_rows[0].id}

    def test_insert_error_without_winner_propagates(self):
        failing_store = MagicMock()
        failing_store.find_document_by_mime.return_value = None
        failing_store.insert_document.side_effect = PersistenceError("connection lost")

        with pytest.raises(PersistenceError):
            ThreadManager(failing_store).ensure_virtual_document(USER_ID, DocumentKind.WEB_CHAT)


class TestCreateThread:

    def test_web_thread(self, threads, store):
        thread = threads.create_thread(USER_ID, ChatMode.WEB)

        assert thread.title == NEW_WEB_CHAT_TITLE
        assert store.get_document(thread.document_id).mime_type == WEB_CHAT_MIME

    def test_all_documents_thread_needs_ready_document(self, threads):
        with pytest.raises(ValidationError):
            threads.create_thread(USER_ID, ChatMode.DOCUMENT)

    def test_all_documents_thread(self, threads, store, ready_document):
        thread = threads.create_thread(USER_ID, ChatMode.DOCUMENT)

        assert thread.title == NEW_ALL_DOCUMENTS_CHAT_TITLE
        assert store.get_document(thread.document_id).mime_type == ALL_DOCUMENTS_MIME

    def test_shared_document_counts_as_ready(self, threads, store):
        add_document(store, owner_id=OTHER_USER_ID, is_shared=True)
        assert threads.create_thread(USER_ID, ChatMode.DOCUMENT).owner_id == USER_ID

    def test_requested_title_is_normalised(self, threads):
        thread = threads.create_thread(USER_ID, ChatMode.WEB, "  여행   계획  ")
        assert thread.title == "여행 계획"


class TestThreadAccess:

    def test_get_thread_of_other_user(self, threads):
        thread = threads.create_thread(USER_ID, ChatMode.WEB)
        with pytest.raises(NotFoundOrForbidden):
            threads.get_thread(OTHER_USER_ID, thread.id)

    def test_delete_thread(self, threads, store):
        thread = threads.create_thread(USER_ID, ChatMode.WEB)
        threads.delete_thread(USER_ID, thread.id)
        assert store.get_thread(thread.id) is None

    def test_delete_missing_thread(self, threads):
        with pytest.raises(NotFoundOrForbidden):
            threads.delete_thread(USER_ID, "missing")


class TestTitles:

    def test_placeholder_titles(self, store):
        web = add_document(store, title="웹 검색 대화", mime_type=WEB_CHAT_MIME)
        all_docs = add_document(store, title="모든 문서 대화", mime_type=ALL_DOCUMENTS_MIME)
        file = add_document(store, title="handbook.pdf")

        assert placeholder_title(web) == NEW_WEB_CHAT_TITLE
        assert placeholder_title(all_docs) == NEW_ALL_DOCUMENTS_CHAT_TITLE
        assert placeholder_title(file) == "handbook.pdf 대화"

    def test_document_title_is_cut(self, store):
        document = add_document(store, title="가" * 60)
        assert document_chat_title(document) == "가" * 40 + " 대화"

    def test_should_replace_title(self, ready_document):
        assert should_replace_title(None, ready_document)
        assert should_replace_title("  ", ready_document)
        assert should_replace_title("새 대화", ready_document)
        assert should_replace_title(NEW_WEB_CHAT_TITLE, ready_document)
        assert should_replace_title("handbook.pdf 대화", ready_document)
        assert not should_replace_title("환불 정책", ready_document)
