"""
Document registration and lifecycle around the ingestion pipeline.

Uploads reach the blob store first (directly from the browser, or through
upload() here); register_upload() then validates the claimed file,
creates the queued document record and runs ingestion synchronously.

Usage:
    service = DocumentService(store, blobs, pipeline, IngestionConfig())
    document, result = service.register_upload(
        user_id, file_name="report.pdf", storage_path=f"{user_id}/abc.pdf",
        mime_type="application/pdf", size=52_311,
    )
"""

import logging
import re
from typing import Optional
from uuid import uuid4

from docchat.base.storage import BaseBlobStore, BaseDocumentStore
from docchat.config import IngestionConfig
from docchat.errors import DocChatError, NotFoundOrForbidden, PersistenceError, ValidationError
from docchat.indexing.pipeline import IngestionPipeline
from docchat.models import Document, DocumentStatus, IngestionResult

logger = logging.getLogger(__name__)

EXTENSION_MIME_TYPES = {
    "pdf": "application/pdf",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "doc": "application/msword",
    "txt": "text/plain",
}

_SAFE_EXTENSION = re.compile(r"^[a-z0-9]+$")


def file_extension(file_name: str) -> str:
    return file_name.rsplit(".", 1)[-1].lower() if "." in file_name else ""


class DocumentService:

    def __init__(
        self,
        store: BaseDocumentStore,
        blobs: BaseBlobStore,
        pipeline: IngestionPipeline,
        config: IngestionConfig = None,
    ):
        self.store = store
        self.blobs = blobs
        self.pipeline = pipeline
        self.config = config or IngestionConfig()

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    def object_path(self, user_id: str, file_name: str) -> str:
        """Blob path for a new upload: {user}/{uuid}.{ext}."""
        ext = file_extension(file_name)
        safe_ext = ext if _SAFE_EXTENSION.match(ext or "") else "bin"
        return f"{user_id}/{uuid4()}.{safe_ext}"

    def validate_upload(self, user_id: str, file_name: str, storage_path: str, mime_type: str, size: int) -> str:
        """
        Check an upload claim and return the effective MIME type.

        The extension decides the MIME type when the client sent none.
        Either an allowed extension or an allowed MIME family is enough.
        """
        ext = file_extension(file_name)
        mime = mime_type or EXTENSION_MIME_TYPES.get(ext) or "application/octet-stream"

        if not storage_path or not storage_path.startswith(f"{user_id}/"):
            raise ValidationError("유효하지 않은 경로입니다.")
        if not file_name or size <= 0:
            raise ValidationError("파일 정보가 올바르지 않습니다.")
        if size > self.config.max_file_size:
            limit_mb = self.config.max_file_size / (1024 * 1024)
            raise ValidationError(
                f"파일 크기가 너무 큽니다. 최대 {limit_mb:.0f}MB까지 업로드할 수 있습니다."
            )

        allowed_ext = ext in self.config.allowed_extensions
        allowed_mime = any(
            mime == allowed or mime.startswith(allowed.split("/")[0])
            for allowed in self.config.allowed_mime_types
        )
        if not (allowed_ext or allowed_mime):
            raise ValidationError("지원하지 않는 파일 형식입니다. pdf, docx, txt만 업로드 가능합니다.")
        return mime

    def register(
        self,
        user_id: str,
        file_name: str,
        storage_path: str,
        mime_type: Optional[str],
        size: int,
    ) -> Document:
        """Validate the claim and insert a queued document record."""
        mime = self.validate_upload(user_id, file_name, storage_path, mime_type or "", size)

        document = Document(
            owner_id=user_id,
            title=file_name,
            storage_path=storage_path,
            mime_type=mime,
            size_bytes=size,
            status=DocumentStatus.QUEUED,
        )
        try:
            document = self.store.insert_document(document)
        except DocChatError:
            raise
        except Exception as exc:
            raise PersistenceError(f"문서 레코드 생성에 실패했습니다: {exc}") from exc

        logger.info("Registered document %s (%s, %d bytes)", document.id, mime, size)
        return document

    def ingest(self, document_id: str) -> IngestionResult:
        return self.pipeline.ingest(document_id)

    def register_upload(
        self,
        user_id: str,
        file_name: str,
        storage_path: str,
        mime_type: Optional[str],
        size: int,
    ) -> tuple[Document, IngestionResult]:
        """register() then ingest() synchronously."""
        document = self.register(user_id, file_name, storage_path, mime_type, size)
        return document, self.ingest(document.id)

    def upload(
        self,
        user_id: str,
        file_name: str,
        data: bytes,
        mime_type: Optional[str] = None,
    ) -> Document:
        """Store the bytes and register them; call ingest() next."""
        path = self.object_path(user_id, file_name)
        mime = self.validate_upload(user_id, file_name, path, mime_type or "", len(data))
        self.blobs.upload(path, data, mime)
        return self.register(user_id, file_name, path, mime, len(data))

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    def get_owned(self, user_id: str, document_id: str) -> Document:
        document = self.store.get_document(document_id)
        if document is None or document.owner_id != user_id:
            raise NotFoundOrForbidden()
        return document

    def get_visible(self, user_id: str, document_id: str) -> Document:
        document = self.store.get_document(document_id)
        if document is None or not document.visible_to(user_id):
            raise NotFoundOrForbidden()
        return document

    def download_url(self, user_id: str, document_id: str, expires_in: int = 300) -> str:
        document = self.get_owned(user_id, document_id)
        if document.is_virtual:
            raise NotFoundOrForbidden()
        return self.blobs.signed_url(document.storage_path, expires_in)

    def delete(self, user_id: str, document_id: str) -> None:
        """Remove the blob, then the record; chunks, threads and messages go with it."""
        document = self.get_owned(user_id, document_id)
        if not document.is_virtual:
            self.blobs.delete([document.storage_path])
        self.store.delete_document(document.id)
        logger.info("Deleted document %s", document.id)
