"""
Configuration for the docchat service.

Split into one config per concern so each stage module only receives
what it needs. AppConfig bundles them all for convenience.

Usage:
    # Full config, passed to build_services()
    config = AppConfig()

    # Override specific parts
    config = AppConfig(
        chunking=ChunkingConfig(chunk_size=600, chunk_overlap=100),
        storage=StorageConfig(backend="sql", database_url="postgresql+psycopg://..."),
    )

    # Standalone pieces
    chunker = FixedWindowChunker(ChunkingConfig())

Secrets and deployment values are read from the environment (or a .env
file at the project root) through field default factories, so
AppConfig() with no arguments picks them up.
"""

import os
from enum import Enum
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

# Load .env from the project root. Runs once at import time, so anything
# that imports docchat.config sees the env vars before services are built.
_env_path = Path(__file__).resolve().parent.parent.parent / ".env"
load_dotenv(_env_path)


def _env(name: str, default: Optional[str] = None):
    return lambda: os.getenv(name, default)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class LLMProvider(str, Enum):
    """
    Supported LLM providers.

    Each provider needs a different LangChain class (ChatOpenAI vs
    ChatAnthropic), so the set we can instantiate is fixed.
    """

    OPENAI = "openai"
    ANTHROPIC = "anthropic"


class StoreBackend(str, Enum):
    """Where documents, threads, messages and chunks live."""

    MEMORY = "memory"
    SQL = "sql"


class BlobBackend(str, Enum):
    """Where uploaded files live."""

    LOCAL = "local"
    S3 = "s3"


# ---------------------------------------------------------------------------
# Per-concern configs
# ---------------------------------------------------------------------------

class LLMConfig(BaseModel):
    """
    Chat model configuration.

    Used by: chat/orchestrator.py, generation/title.py, indexing/extraction.py

    The provider + model_name pair determines which LangChain chat model
    class gets instantiated by utils.helpers.get_llm.
    """

    provider: LLMProvider = Field(
        default=LLMProvider.OPENAI,
        description="Which LLM provider to use",
    )
    model_name: str = Field(
        default="gpt-4o-mini",
        description="Model identifier (e.g. 'gpt-4o-mini', 'claude-sonnet-4-5-20250929')",
    )
    temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=2.0,
        description="Sampling temperature",
    )
    max_tokens: int = Field(
        default=2000,
        gt=0,
        description="Maximum tokens in the LLM response",
    )


class EmbeddingConfig(BaseModel):
    """
    Embedding model configuration.

    Used by: indexing/embeddings.py

    The OpenAI embeddings endpoint accepts many inputs per request; batch_size
    caps how many chunk texts go into one call.
    """

    model_name: str = Field(
        default="text-embedding-3-small",
        description="Embedding model identifier",
    )
    dimensions: int = Field(
        default=1536,
        gt=0,
        description="Vector size; must match the pgvector column",
    )
    batch_size: int = Field(
        default=96,
        gt=0,
        description="Maximum number of texts per embeddings request",
    )
    api_key: Optional[str] = Field(
        default_factory=_env("OPENAI_API_KEY"),
        description="OpenAI API key (defaults to $OPENAI_API_KEY)",
    )


class ChunkingConfig(BaseModel):
    """
    Document chunking configuration.

    Used by: indexing/chunking.py

    Fixed character windows: each chunk is chunk_size characters and the
    next one starts chunk_size - chunk_overlap characters later.
    """

    chunk_size: int = Field(
        default=900,
        gt=0,
        description="Window size in characters",
    )
    chunk_overlap: int = Field(
        default=150,
        ge=0,
        description="Characters shared by consecutive windows",
    )

    @model_validator(mode="after")
    def validate_overlap(self) -> "ChunkingConfig":
        """Overlap must be smaller than chunk size, otherwise windows would never advance."""
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError(
                f"chunk_overlap ({self.chunk_overlap}) must be less than "
                f"chunk_size ({self.chunk_size})"
            )
        return self


class RetrieverConfig(BaseModel):
    """
    Retrieval configuration.

    Used by: retrieval/search.py, retrieval/query.py

    search_threshold is the floor handed to the vector search; min_similarity
    is the stricter bar the best candidate has to clear before we answer at all.
    """

    match_count: int = Field(default=6, gt=0, description="k for the vector search")
    search_threshold: float = Field(
        default=0.2,
        ge=-1.0,
        le=1.0,
        description="Similarity floor passed to the vector search",
    )
    min_similarity: float = Field(
        default=0.35,
        ge=-1.0,
        le=1.0,
        description="Relevance gate: best candidate must reach this",
    )
    faq_pool_size: int = Field(default=8, ge=0, description="FAQ rows fetched per question")
    faq_top_n: int = Field(default=4, ge=0, description="FAQ rows merged into the context")
    referential_min_chars: int = Field(
        default=15,
        gt=0,
        description="Questions shorter than this are treated as follow-ups",
    )
    query_max_chars: int = Field(
        default=800,
        gt=0,
        description="Cap on the rewritten retrieval query",
    )
    snippet_chars: int = Field(default=200, gt=0, description="Length of source snippets")

    @model_validator(mode="after")
    def validate_thresholds(self) -> "RetrieverConfig":
        """The gate cannot be looser than the search floor."""
        if self.min_similarity < self.search_threshold:
            raise ValueError(
                f"min_similarity ({self.min_similarity}) must be >= "
                f"search_threshold ({self.search_threshold})"
            )
        return self


class IngestionConfig(BaseModel):
    """
    Upload validation and ingestion pipeline settings.

    Used by: indexing/pipeline.py, indexing/documents.py, indexing/extraction.py
    """

    allowed_mime_types: list[str] = Field(
        default_factory=lambda: [
            "application/pdf",
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            "text/plain",
        ],
    )
    allowed_extensions: list[str] = Field(
        default_factory=lambda: ["pdf", "doc", "docx", "txt"],
    )
    max_file_size: int = Field(
        default=15 * 1024 * 1024,
        gt=0,
        description="Largest accepted upload in bytes",
    )
    insert_batch_size: int = Field(default=50, gt=0, description="Chunk rows per insert")
    error_message_max_chars: int = Field(
        default=400,
        gt=0,
        description="Failure reasons stored on the document are cut to this length",
    )
    pdf_min_text_chars: int = Field(
        default=20,
        ge=0,
        description="A PDF text layer shorter than this falls through to the next strategy",
    )
    pdf_max_pages: int = Field(default=200, gt=0, description="Page cap for renderer text extraction")
    ocr_render_scale: float = Field(default=1.5, gt=0, description="Zoom used when rendering a page for OCR")
    vision_llm: LLMConfig = Field(
        default_factory=lambda: LLMConfig(model_name="gpt-4o-mini", temperature=0.0),
        description="Vision model used for the OCR fallback",
    )


class ChatConfig(BaseModel):
    """
    Chat orchestration settings.

    Used by: chat/orchestrator.py, chat/threads.py, generation/*
    """

    title_llm: LLMConfig = Field(
        default_factory=lambda: LLMConfig(model_name="gpt-4o-mini", temperature=0.3, max_tokens=30),
    )
    web_model: str = Field(default="gpt-4o-mini", description="Model used with the web search tool")
    web_temperature: float = Field(default=0.2, ge=0.0, le=2.0)
    web_search_context_size: str = Field(
        default="medium",
        description="'low', 'medium' or 'high'",
    )
    max_web_sources: int = Field(default=6, gt=0)
    moderation_model: str = Field(default="omni-moderation-latest")
    doc_history_limit: int = Field(default=12, ge=0)
    web_history_limit: int = Field(default=20, ge=0)
    title_candidate_chars: int = Field(default=60, gt=0)
    title_max_chars: int = Field(default=24, gt=0)


class StorageConfig(BaseModel):
    """
    Datastore and blob-store selection.

    Used by: services.py
    """

    backend: StoreBackend = Field(
        default_factory=lambda: StoreBackend(os.getenv("DOCCHAT_STORE", "memory")),
    )
    database_url: Optional[str] = Field(
        default_factory=_env("DOCCHAT_DATABASE_URL"),
        description="SQLAlchemy URL, e.g. postgresql+psycopg://user:pw@host/db",
    )
    blob_backend: BlobBackend = Field(
        default_factory=lambda: BlobBackend(os.getenv("DOCCHAT_BLOB_BACKEND", "local")),
    )
    blob_root: str = Field(default_factory=_env("DOCCHAT_BLOB_ROOT", "./data/blobs"))
    s3_bucket: Optional[str] = Field(default_factory=_env("DOCCHAT_S3_BUCKET"))
    s3_region: Optional[str] = Field(default_factory=_env("AWS_DEFAULT_REGION"))
    signed_url_ttl: int = Field(default=300, gt=0, description="Download link lifetime in seconds")

    @model_validator(mode="after")
    def validate_backends(self) -> "StorageConfig":
        if self.backend == StoreBackend.SQL and not self.database_url:
            raise ValueError("database_url is required for the sql backend")
        if self.blob_backend == BlobBackend.S3 and not self.s3_bucket:
            raise ValueError("s3_bucket is required for the s3 blob backend")
        return self


class AuthConfig(BaseModel):
    """
    API key → user id mapping.

    DOCCHAT_API_KEYS="key1:user-a,key2:user-b"
    """

    api_keys: dict[str, str] = Field(
        default_factory=lambda: parse_api_keys(os.getenv("DOCCHAT_API_KEYS", "")),
    )
    header_name: str = Field(default="X-API-Key")


def parse_api_keys(raw: str) -> dict[str, str]:
    """Parse 'key:user,key:user' into a dict, ignoring malformed pairs."""
    pairs = {}
    for item in raw.split(","):
        key, sep, user = item.strip().partition(":")
        if sep and key and user:
            pairs[key] = user
    return pairs


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------

class AppConfig(BaseModel):
    """
    Complete service configuration.

    build_services() receives this and passes slices to each component:
        chunker = FixedWindowChunker(config.chunking)
        retriever = Retriever(store, embedder, config.retriever)

    All sub-configs have sensible defaults, so AppConfig() with no
    arguments gives a working in-memory setup.
    """

    llm: LLMConfig = Field(default_factory=LLMConfig)
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    chunking: ChunkingConfig = Field(default_factory=ChunkingConfig)
    retriever: RetrieverConfig = Field(default_factory=RetrieverConfig)
    ingestion: IngestionConfig = Field(default_factory=IngestionConfig)
    chat: ChatConfig = Field(default_factory=ChatConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    log_level: str = Field(default_factory=_env("DOCCHAT_LOG_LEVEL", "INFO"))
