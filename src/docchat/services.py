"""
Service wiring.

build_services() turns an AppConfig into the set of long-lived objects the
API needs: one OpenAI client, the chat models, stores, and the pipeline /
retriever / orchestrator built on top of them. The API lifespan calls it
once and keeps the result on app.state.services.

Usage:
    services = build_services(AppConfig())
    turn = services.orchestrator.prepare(user_id, request)
"""

import logging

import openai

from docchat.api.auth import ApiKeyAuthProvider
from docchat.base.auth import BaseAuthProvider
from docchat.base.storage import BaseBlobStore, BaseDocumentStore
from docchat.chat.orchestrator import ChatOrchestrator
from docchat.chat.threads import ThreadManager
from docchat.config import AppConfig, BlobBackend, StoreBackend
from docchat.generation.moderation import ModerationClient
from docchat.generation.title import TitleGenerator
from docchat.generation.web import WebSearchClient
from docchat.indexing.chunking import get_chunker
from docchat.indexing.documents import DocumentService
from docchat.indexing.embeddings import EmbeddingClient
from docchat.indexing.extraction import TextExtractor
from docchat.indexing.pipeline import IngestionPipeline
from docchat.retrieval.search import Retriever
from docchat.storage.blobs import LocalBlobStore, S3BlobStore
from docchat.storage.memory import MemoryDocumentStore
from docchat.utils.helpers import get_llm

logger = logging.getLogger(__name__)


class Services:
    """Container for the objects request handlers use."""

    def __init__(
        self,
        config: AppConfig,
        store: BaseDocumentStore,
        blobs: BaseBlobStore,
        documents: DocumentService,
        threads: ThreadManager,
        orchestrator: ChatOrchestrator,
        auth: BaseAuthProvider,
    ):
        self.config = config
        self.store = store
        self.blobs = blobs
        self.documents = documents
        self.threads = threads
        self.orchestrator = orchestrator
        self.auth = auth


def build_store(config: AppConfig) -> BaseDocumentStore:
    if config.storage.backend == StoreBackend.SQL:
        from docchat.storage.sql import SqlDocumentStore

        store = SqlDocumentStore(config.storage.database_url)
        store.init_schema()
        return store
    return MemoryDocumentStore()


def build_blob_store(config: AppConfig) -> BaseBlobStore:
    if config.storage.blob_backend == BlobBackend.S3:
        return S3BlobStore(config.storage.s3_bucket, config.storage.s3_region)
    return LocalBlobStore(config.storage.blob_root)


def build_services(config: AppConfig = None) -> Services:
    config = config or AppConfig()
    if not config.embedding.api_key:
        raise ValueError("OPENAI_API_KEY를 설정해주세요.")

    client = openai.OpenAI(api_key=config.embedding.api_key)
    store = build_store(config)
    blobs = build_blob_store(config)

    embedder = EmbeddingClient(config.embedding, client=client)
    extractor = TextExtractor(config.ingestion, ocr_llm=get_llm(config.ingestion.vision_llm))
    pipeline = IngestionPipeline(
        store, blobs, extractor, get_chunker(config.chunking), embedder, config.ingestion,
    )
    threads = ThreadManager(store, config.chat)

    orchestrator = ChatOrchestrator(
        store=store,
        threads=threads,
        retriever=Retriever(store, embedder, config.retriever),
        moderation=ModerationClient(client, config.chat),
        web=WebSearchClient(client, config.chat),
        llm=get_llm(config.llm),
        titles=TitleGenerator(get_llm(config.chat.title_llm), config.chat.title_max_chars),
        config=config.chat,
    )

    logger.info(
        "Services ready (store=%s, blobs=%s, model=%s)",
        config.storage.backend.value, config.storage.blob_backend.value, config.llm.model_name,
    )
    return Services(
        config=config,
        store=store,
        blobs=blobs,
        documents=DocumentService(store, blobs, pipeline, config.ingestion),
        threads=threads,
        orchestrator=orchestrator,
        auth=ApiKeyAuthProvider(config.auth.api_keys, config.auth.header_name),
    )
