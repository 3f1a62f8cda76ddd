"""
Shared test fixtures for the docchat test suite.

Provides reusable fixtures: configs, an in-memory store with a ready
document, and mocked collaborators (embeddings, chat model, moderation,
web search) so no test talks to a network.
"""

from unittest.mock import MagicMock

import pytest
from langchain_core.messages import AIMessage, AIMessageChunk

from docchat.chat.orchestrator import ChatOrchestrator
from docchat.chat.threads import ThreadManager
from docchat.config import ChatConfig, ChunkingConfig, IngestionConfig, RetrieverConfig
from docchat.generation.web import WebSearchStream
from docchat.models import ChunkRecord, Document, DocumentStatus
from docchat.retrieval.search import Retriever
from docchat.storage.blobs import LocalBlobStore
from docchat.storage.memory import MemoryDocumentStore

USER_ID = "user-1"
OTHER_USER_ID = "user-2"

# Unit vectors: query along x, chunks at known angles to it
QUERY_VECTOR = [1.0, 0.0, 0.0]
CLOSE_VECTOR = [0.9, 0.43588989, 0.0]     # cosine 0.9
WEAK_VECTOR = [0.3, 0.95393920, 0.0]      # cosine 0.3
FAR_VECTOR = [0.0, 1.0, 0.0]              # cosine 0.0


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def chunking_config():
    return ChunkingConfig(chunk_size=900, chunk_overlap=150)


@pytest.fixture
def retriever_config():
    return RetrieverConfig()


@pytest.fixture
def ingestion_config():
    return IngestionConfig()


@pytest.fixture
def chat_config():
    return ChatConfig()


# ---------------------------------------------------------------------------
# Storage fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def store():
    return MemoryDocumentStore()


@pytest.fixture
def blobs(tmp_path):
    return LocalBlobStore(str(tmp_path / "blobs"))


def add_document(store, owner_id=USER_ID, title="handbook.pdf", status=DocumentStatus.READY,
                 mime_type="application/pdf", chunks=None, is_shared=False) -> Document:
    """Insert a document plus (content, embedding) chunk pairs."""
    document = Document(
        owner_id=owner_id,
        title=title,
        storage_path=f"{owner_id}/{title}",
        mime_type=mime_type,
        size_bytes=1024,
        status=status,
        is_shared=is_shared,
    )
    store.insert_document(document)
    store.insert_chunks([
        ChunkRecord(document_id=document.id, owner_id=owner_id, content=content, embedding=embedding)
        for content, embedding in (chunks or [])
    ])
    return document


@pytest.fixture
def ready_document(store):
    return add_document(store, chunks=[
        ("환불은 구매 후 14일 이내에 가능합니다.", CLOSE_VECTOR),
        ("배송은 평균 3일이 소요됩니다.", WEAK_VECTOR),
        ("회사 연혁", FAR_VECTOR),
    ])


# ---------------------------------------------------------------------------
# Mock fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_embedder():
    """
    EmbeddingClient stand-in.

    Every query embeds to QUERY_VECTOR; documents embed to CLOSE_VECTOR.
    """
    embedder = MagicMock()
    embedder.embed_query.return_value = QUERY_VECTOR
    embedder.embed_documents.side_effect = lambda texts: [CLOSE_VECTOR for _ in texts]
    return embedder


@pytest.fixture
def mock_llm():
    """
    Chat model whose invoke() and stream() produce the same answer.
    """
    llm = MagicMock()
    llm.invoke.return_value = AIMessage(content="환불은 14일 이내 가능합니다 [1].")
    llm.stream.side_effect = lambda messages: iter([
        AIMessageChunk(content="환불은 "),
        AIMessageChunk(content="14일 이내 "),
        AIMessageChunk(content="가능합니다 [1]."),
    ])
    return llm


@pytest.fixture
def mock_moderation():
    moderation = MagicMock()
    moderation.is_flagged.return_value = False
    return moderation


@pytest.fixture
def mock_web():
    web = MagicMock()
    web.complete.return_value = ("웹 답변", [])
    web.stream.side_effect = lambda question, history: WebSearchStream(iter([
        {"type": "response.output_text.delta", "delta": "웹 답변"},
    ]))
    return web


@pytest.fixture
def mock_titles():
    titles = MagicMock()
    titles.generate.return_value = "환불 정책"
    return titles


@pytest.fixture
def orchestrator(store, mock_embedder, mock_llm, mock_moderation, mock_web, mock_titles, chat_config):
    return ChatOrchestrator(
        store=store,
        threads=ThreadManager(store, chat_config),
        retriever=Retriever(store, mock_embedder, RetrieverConfig()),
        moderation=mock_moderation,
        web=mock_web,
        llm=mock_llm,
        titles=mock_titles,
        config=chat_config,
    )
