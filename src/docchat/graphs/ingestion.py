"""
Ingestion LangGraph graph.

Takes one queued document from blob to searchable chunks:

    "report.pdf" (queued) → download → extract → chunk → embed → persist → ready

Graph structure:
    START → load → validate → route_validation ─┬→ reject → END
                                                 └→ claim → download → extract → chunk
                                                      → embed → persist → finish → END

Nodes raise DocChatError subclasses on failure; the exception leaves
graph.invoke() unchanged and IngestionPipeline records it on the
document. A disallowed MIME type is not an exception: the reject node
marks the document failed and the graph ends normally.

Usage:
    from docchat.graphs.ingestion import build_ingestion_graph

    graph = build_ingestion_graph(store, blobs, extractor, chunker, embedder)
    state = graph.invoke({"document_id": "..."})
    print(state["status"], state.get("chunk_count"))
"""

import logging

from langgraph.graph import END, START, StateGraph

from docchat.base.indexer import BaseChunker
from docchat.base.storage import BaseBlobStore, BaseDocumentStore
from docchat.config import IngestionConfig
from docchat.errors import (
    BlobStoreError,
    DocChatError,
    ExtractionEmpty,
    IngestionInProgress,
    NotFoundOrForbidden,
    PersistenceError,
)
from docchat.graphs.state import IngestionState
from docchat.indexing.embeddings import EmbeddingClient
from docchat.indexing.extraction import TextExtractor
from docchat.models import ChunkRecord, DocumentStatus

logger = logging.getLogger(__name__)


def is_allowed_mime(mime_type: str, allowed: list[str]) -> bool:
    """Exact match, or the allowed type's subtype appears in the MIME string."""
    mime = (mime_type or "").lower()
    for allowed_type in allowed:
        subtype = allowed_type.split("/")[-1]
        if mime == allowed_type or subtype in mime:
            return True
    return False


def build_ingestion_graph(
    store: BaseDocumentStore,
    blobs: BaseBlobStore,
    extractor: TextExtractor,
    chunker: BaseChunker,
    embedder: EmbeddingClient,
    config: IngestionConfig = None,
) -> StateGraph:
    """
    Build the ingestion LangGraph.

    Args:
        store: Document/chunk persistence.
        blobs: Where the uploaded bytes live.
        extractor: Turns bytes + MIME type into text.
        chunker: Splits text into windows.
        embedder: Embeds the windows.
        config: Allowed types and insert batch size.

    Returns:
        A compiled LangGraph that accepts {"document_id": "..."} and
        returns the final IngestionState.
    """
    config = config or IngestionConfig()

    # --- Node functions ---

    def load_node(state: IngestionState) -> dict:
        document = store.get_document(state["document_id"])
        if document is None:
            raise NotFoundOrForbidden("문서를 찾을 수 없습니다.")
        return {"document": document}

    def validate_node(state: IngestionState) -> dict:
        mime = state["document"].mime_type
        if not is_allowed_mime(mime, config.allowed_mime_types):
            return {"rejected_reason": f"지원하지 않는 MIME 타입: {mime}"}
        return {"rejected_reason": None}

    def reject_node(state: IngestionState) -> dict:
        reason = state["rejected_reason"]
        store.set_document_status(state["document_id"], DocumentStatus.FAILED, reason)
        logger.info("Rejected document %s: %s", state["document_id"], reason)
        return {"status": DocumentStatus.FAILED}

    def claim_node(state: IngestionState) -> dict:
        if not store.claim_document(state["document_id"]):
            raise IngestionInProgress()
        logger.info("Processing document %s", state["document_id"])
        return {}

    def download_node(state: IngestionState) -> dict:
        path = state["document"].storage_path
        try:
            data = blobs.download(path)
        except DocChatError:
            raise
        except Exception as exc:
            raise BlobStoreError(f"Failed to download {path}: {exc}") from exc
        return {"data": data}

    def extract_node(state: IngestionState) -> dict:
        text = extractor.extract(state["data"], state["document"].mime_type)
        return {"text": text}

    def chunk_node(state: IngestionState) -> dict:
        chunks = chunker.split_text(state["text"])
        if not chunks:
            raise ExtractionEmpty()
        return {"chunks": chunks}

    def embed_node(state: IngestionState) -> dict:
        return {"embeddings": embedder.embed_documents(state["chunks"])}

    def persist_node(state: IngestionState) -> dict:
        document = state["document"]
        records = [
            ChunkRecord(
                document_id=document.id,
                owner_id=document.owner_id,
                content=content,
                embedding=embedding,
                metadata={"chunk_index": i},
            )
            for i, (content, embedding) in enumerate(zip(state["chunks"], state["embeddings"]))
        ]

        try:
            store.delete_chunks(document.id)
            size = config.insert_batch_size
            for start in range(0, len(records), size):
                store.insert_chunks(records[start:start + size])
        except DocChatError:
            raise
        except Exception as exc:
            raise PersistenceError(f"Failed to store chunks: {exc}") from exc

        return {"chunk_count": len(records)}

    def finish_node(state: IngestionState) -> dict:
        store.set_document_status(state["document_id"], DocumentStatus.READY, None)
        logger.info("Document %s ready (%d chunks)", state["document_id"], state["chunk_count"])
        return {"status": DocumentStatus.READY}

    # --- Routing function ---
    def route_validation(state: IngestionState) -> str:
        return "reject" if state.get("rejected_reason") else "claim"

    # --- Build the graph ---
    graph = StateGraph(IngestionState)

    graph.add_node("load", load_node)
    graph.add_node("validate", validate_node)
    graph.add_node("reject", reject_node)
    graph.add_node("claim", claim_node)
    graph.add_node("download", download_node)
    graph.add_node("extract", extract_node)
    graph.add_node("chunk", chunk_node)
    graph.add_node("embed", embed_node)
    graph.add_node("persist", persist_node)
    graph.add_node("finish", finish_node)

    graph.add_edge(START, "load")
    graph.add_edge("load", "validate")
    graph.add_conditional_edges(
        "validate",
        route_validation,
        {"reject": "reject", "claim": "claim"},
    )
    graph.add_edge("reject", END)
    graph.add_edge("claim", "download")
    graph.add_edge("download", "extract")
    graph.add_edge("extract", "chunk")
    graph.add_edge("chunk", "embed")
    graph.add_edge("embed", "persist")
    graph.add_edge("persist", "finish")
    graph.add_edge("finish", END)

    return graph.compile()
