"""Tests for DocumentService (upload validation, access checks, deletion)."""

from unittest.mock import MagicMock

import pytest

from docchat.config import IngestionConfig
from docchat.errors import NotFoundOrForbidden, ValidationError
from docchat.indexing.documents import DocumentService, file_extension
from docchat.models import DocumentStatus, IngestionResult, Thread

from conftest import OTHER_USER_ID, USER_ID, add_document

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


@pytest.fixture
def pipeline():
    pipeline = MagicMock()
    pipeline.ingest.side_effect = lambda document_id: IngestionResult(
        document_id=document_id, status=DocumentStatus.READY, chunk_count=2,
    )
    return pipeline


@pytest.fixture
def service(store, blobs, pipeline):
    return DocumentService(store, blobs, pipeline, IngestionConfig())


class TestValidateUpload:

    def test_valid_pdf(self, service):
        mime = service.validate_upload(USER_ID, "report.pdf", f"{USER_ID}/abc.pdf", "application/pdf", 1000)
        assert mime == "application/pdf"

    def test_mime_inferred_from_extension(self, service):
        mime = service.validate_upload(USER_ID, "memo.docx", f"{USER_ID}/abc.docx", "", 1000)
        assert mime == DOCX_MIME

    def test_path_outside_user_prefix(self, service):
        with pytest.raises(ValidationError, match="유효하지 않은 경로"):
            service.validate_upload(USER_ID, "report.pdf", f"{OTHER_USER_ID}/abc.pdf", "application/pdf", 1000)

    def test_non_positive_size(self, service):
        with pytest.raises(ValidationError):
            service.validate_upload(USER_ID, "report.pdf", f"{USER_ID}/abc.pdf", "application/pdf", 0)

    def test_too_large(self, service):
        with pytest.raises(ValidationError, match="15MB"):
            service.validate_upload(
                USER_ID, "report.pdf", f"{USER_ID}/abc.pdf", "application/pdf", 15 * 1024 * 1024 + 1,
            )

    def test_unsupported_type(self, service):
        with pytest.raises(ValidationError, match="지원하지 않는 파일 형식"):
            service.validate_upload(USER_ID, "photo.png", f"{USER_ID}/abc.png", "image/png", 1000)

    def test_file_extension(self):
        assert file_extension("Report.PDF") == "pdf"
        assert file_extension("README") == ""


class TestRegistration:

    def test_register_creates_queued_document(self, service, store):
        document = service.register(USER_ID, "report.pdf", f"{USER_ID}/abc.pdf", "application/pdf", 1000)

        stored = store.get_document(document.id)
        assert stored.status == DocumentStatus.QUEUED
        assert stored.title == "report.pdf"
        assert stored.owner_id == USER_ID

    def test_register_upload_runs_ingestion(self, service, pipeline):
        document, result = service.register_upload(
            USER_ID, "report.pdf", f"{USER_ID}/abc.pdf", "application/pdf", 1000,
        )
        pipeline.ingest.assert_called_once_with(document.id)
        assert result.status == DocumentStatus.READY

    def test_upload_stores_bytes_under_user_prefix(self, service, blobs):
        document = service.upload(USER_ID, "notes.txt", b"hello", "text/plain")

        assert document.storage_path.startswith(f"{USER_ID}/")
        assert document.storage_path.endswith(".txt")
        assert blobs.download(document.storage_path) == b"hello"

    def test_object_path_sanitises_extension(self, service):
        assert service.object_path(USER_ID, "weird.p/df").endswith(".bin")


class TestAccess:

    def test_download_url_for_owner(self, service, store, blobs):
        document = add_document(store)
        blobs.upload(document.storage_path, b"%PDF", "application/pdf")

        url = service.download_url(USER_ID, document.id)
        assert url.startswith("file://")

    def test_download_url_denied_for_other_user_even_if_shared(self, service, store):
        document = add_document(store, is_shared=True)
        with pytest.raises(NotFoundOrForbidden):
            service.download_url(OTHER_USER_ID, document.id)

    def test_download_url_denied_for_virtual_document(self, service, store):
        document = add_document(store, title="웹 검색 대화", mime_type="application/x-docchat-web-chat")
        with pytest.raises(NotFoundOrForbidden):
            service.download_url(USER_ID, document.id)

    def test_shared_document_visible(self, service, store):
        document = add_document(store, is_shared=True)
        assert service.get_visible(OTHER_USER_ID, document.id).id == document.id

    def test_private_document_hidden(self, service, store):
        document = add_document(store)
        with pytest.raises(NotFoundOrForbidden):
            service.get_visible(OTHER_USER_ID, document.id)


class TestDelete:

    def test_delete_removes_blob_record_and_dependents(self, service, store, blobs, ready_document):
        blobs.upload(ready_document.storage_path, b"%PDF", "application/pdf")
        thread = store.insert_thread(Thread(document_id=ready_document.id, owner_id=USER_ID, title="t"))

        service.delete(USER_ID, ready_document.id)

        assert store.get_document(ready_document.id) is None
        assert store.get_thread(thread.id) is None
        assert not [c for c in store.chunks.values() if c.document_id == ready_document.id]
        assert not (blobs.root / ready_document.storage_path).exists()

    def test_delete_by_other_user(self, service, ready_document):
        with pytest.raises(NotFoundOrForbidden):
            service.delete(OTHER_USER_ID, ready_document.id)
