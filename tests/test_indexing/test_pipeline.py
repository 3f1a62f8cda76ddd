"""Tests for the ingestion pipeline (memory store, local blobs, mocked embeddings)."""

from unittest.mock import MagicMock

import pytest

from docchat.config import ChunkingConfig, IngestionConfig
from docchat.errors import (
    BlobStoreError,
    EmbeddingProviderError,
    ExtractionEmpty,
    IngestionInProgress,
    NotFoundOrForbidden,
)
from docchat.graphs.ingestion import is_allowed_mime
from docchat.indexing.chunking import FixedWindowChunker
from docchat.indexing.extraction import TextExtractor
from docchat.indexing.pipeline import IngestionPipeline
from docchat.models import Document, DocumentStatus

from conftest import USER_ID

TEXT = "".join(chr(ord("a") + i % 26) for i in range(2000))


@pytest.fixture
def pipeline(store, blobs, mock_embedder):
    return IngestionPipeline(
        store,
        blobs,
        TextExtractor(),
        FixedWindowChunker(ChunkingConfig(chunk_size=900, chunk_overlap=150)),
        mock_embedder,
        IngestionConfig(),
    )


def queue_document(store, blobs, data=TEXT.encode(), mime_type="text/plain", title="notes.txt"):
    path = f"{USER_ID}/{title}"
    blobs.upload(path, data, mime_type)
    document = Document(
        owner_id=USER_ID,
        title=title,
        storage_path=path,
        mime_type=mime_type,
        size_bytes=len(data),
    )
    return store.insert_document(document)


class TestIngestionPipeline:

    def test_happy_path(self, pipeline, store, blobs, mock_embedder):
        document = queue_document(store, blobs)

        result = pipeline.ingest(document.id)

        assert result.status == DocumentStatus.READY
        assert result.chunk_count == 3
        stored = store.get_document(document.id)
        assert stored.status == DocumentStatus.READY
        assert stored.error_message is None

        chunks = sorted(
            (c for c in store.chunks.values() if c.document_id == document.id),
            key=lambda c: c.metadata["chunk_index"],
        )
        assert [c.metadata["chunk_index"] for c in chunks] == [0, 1, 2]
        assert chunks[0].content == TEXT[:900]
        assert all(c.owner_id == USER_ID for c in chunks)
        mock_embedder.embed_documents.assert_called_once()

    def test_disallowed_mime_marks_failed(self, pipeline, store, blobs, mock_embedder):
        document = queue_document(store, blobs, data=b"PK\x03\x04", mime_type="application/zip", title="a.zip")

        result = pipeline.ingest(document.id)

        assert result.status == DocumentStatus.FAILED
        assert result.error_message == "지원하지 않는 MIME 타입: application/zip"
        stored = store.get_document(document.id)
        assert stored.status == DocumentStatus.FAILED
        assert stored.error_message == "지원하지 않는 MIME 타입: application/zip"
        assert not store.chunks
        mock_embedder.embed_documents.assert_not_called()

    def test_empty_text_fails(self, pipeline, store, blobs):
        document = queue_document(store, blobs, data=b"   \n  ")

        with pytest.raises(ExtractionEmpty):
            pipeline.ingest(document.id)

        stored = store.get_document(document.id)
        assert stored.status == DocumentStatus.FAILED
        assert stored.error_message == "본문을 추출할 수 없습니다."

    def test_concurrent_run_is_rejected_without_touching_record(self, pipeline, store, blobs):
        document = queue_document(store, blobs)
        store.set_document_status(document.id, DocumentStatus.PROCESSING)

        with pytest.raises(IngestionInProgress):
            pipeline.ingest(document.id)

        stored = store.get_document(document.id)
        assert stored.status == DocumentStatus.PROCESSING
        assert stored.error_message is None

    def test_reingestion_replaces_chunks(self, pipeline, store, blobs):
        document = queue_document(store, blobs)

        pipeline.ingest(document.id)
        pipeline.ingest(document.id)

        assert len([c for c in store.chunks.values() if c.document_id == document.id]) == 3

    def test_failed_document_can_be_retried(self, pipeline, store, blobs):
        document = queue_document(store, blobs)
        store.set_document_status(document.id, DocumentStatus.FAILED, "이전 실패")

        result = pipeline.ingest(document.id)

        assert result.status == DocumentStatus.READY
        assert store.get_document(document.id).error_message is None

    def test_error_message_truncated(self, pipeline, store, blobs, mock_embedder):
        mock_embedder.embed_documents.side_effect = EmbeddingProviderError("x" * 1000)
        document = queue_document(store, blobs)

        with pytest.raises(EmbeddingProviderError):
            pipeline.ingest(document.id)

        stored = store.get_document(document.id)
        assert stored.status == DocumentStatus.FAILED
        assert stored.error_message == "x" * 400

    def test_missing_blob_fails(self, pipeline, store):
        document = store.insert_document(Document(
            owner_id=USER_ID,
            title="gone.txt",
            storage_path=f"{USER_ID}/gone.txt",
            mime_type="text/plain",
            size_bytes=10,
        ))

        with pytest.raises(BlobStoreError):
            pipeline.ingest(document.id)

        assert store.get_document(document.id).status == DocumentStatus.FAILED

    def test_missing_document(self, pipeline):
        with pytest.raises(NotFoundOrForbidden):
            pipeline.ingest("does-not-exist")

    def test_chunks_inserted_in_batches(self, store, blobs, mock_embedder):
        pipeline = IngestionPipeline(
            store,
            blobs,
            TextExtractor(),
            FixedWindowChunker(ChunkingConfig(chunk_size=900, chunk_overlap=150)),
            mock_embedder,
            IngestionConfig(insert_batch_size=2),
        )
        document = queue_document(store, blobs)
        store.insert_chunks = MagicMock(wraps=store.insert_chunks)

        pipeline.ingest(document.id)

        assert [len(call.args[0]) for call in store.insert_chunks.call_args_list] == [2, 1]


class TestIsAllowedMime:

    def test_exact_match(self):
        assert is_allowed_mime("application/pdf", ["application/pdf"])

    def test_subtype_contained(self):
        assert is_allowed_mime("application/x-pdf", ["application/pdf"])
        assert is_allowed_mime("text/plain; charset=utf-8", ["text/plain"])

    def test_rejected(self):
        assert not is_allowed_mime("application/zip", ["application/pdf", "text/plain"])
