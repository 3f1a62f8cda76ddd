"""
Ingestion pipeline.

Thin wrapper around the ingestion graph that owns failure bookkeeping:
whatever goes wrong after the document has been claimed is written to the
document as status=failed with a truncated error_message, then re-raised
so the caller (HTTP route, worker) sees it too.

Two failures are not recorded on the document: a missing document (there
is nothing to record on) and IngestionInProgress (another run owns the
record and will set its outcome).

Usage:
    pipeline = IngestionPipeline(store, blobs, extractor, chunker, embedder)
    result = pipeline.ingest(document_id)
"""

import logging

from docchat.base.indexer import BaseChunker
from docchat.base.storage import BaseBlobStore, BaseDocumentStore
from docchat.config import IngestionConfig
from docchat.errors import DocChatError, IngestionInProgress, NotFoundOrForbidden
from docchat.graphs.ingestion import build_ingestion_graph
from docchat.indexing.embeddings import EmbeddingClient
from docchat.indexing.extraction import TextExtractor
from docchat.models import DocumentStatus, IngestionResult
from docchat.utils.helpers import truncate

logger = logging.getLogger(__name__)


class IngestionPipeline:

    def __init__(
        self,
        store: BaseDocumentStore,
        blobs: BaseBlobStore,
        extractor: TextExtractor,
        chunker: BaseChunker,
        embedder: EmbeddingClient,
        config: IngestionConfig = None,
    ):
        self.store = store
        self.config = config or IngestionConfig()
        self._graph = build_ingestion_graph(
            store, blobs, extractor, chunker, embedder, self.config,
        )

    def ingest(self, document_id: str) -> IngestionResult:
        try:
            state = self._graph.invoke({"document_id": document_id})
        except (NotFoundOrForbidden, IngestionInProgress):
            raise
        except Exception as exc:
            self._mark_failed(document_id, exc)
            raise

        return IngestionResult(
            document_id=document_id,
            status=state["status"],
            chunk_count=state.get("chunk_count", 0),
            error_message=state.get("rejected_reason"),
        )

    def _mark_failed(self, document_id: str, exc: Exception) -> None:
        message = exc.message if isinstance(exc, DocChatError) and exc.message else str(exc)
        message = truncate(message or type(exc).__name__, self.config.error_message_max_chars)
        logger.error("Ingestion of %s failed: %s", document_id, message)
        try:
            self.store.set_document_status(document_id, DocumentStatus.FAILED, message)
        except Exception:
            logger.exception("Could not record failure on document %s", document_id)
