from .chat import (
    ChatEvent,
    ChatMode,
    ChatRequest,
    ChatResult,
    ChatScope,
    ChunkSource,
    Message,
    Role,
    Source,
    Thread,
    UrlSource,
)
from .document import (
    ALL_DOCUMENTS_MIME,
    VIRTUAL_DOCUMENTS,
    WEB_CHAT_MIME,
    ChunkMatch,
    ChunkRecord,
    Document,
    DocumentKind,
    DocumentStatus,
    FaqEmbedding,
    ScoredChunk,
)
from .result import BuiltPrompt, IngestionResult, RetrievalResult

__all__ = [
    "ALL_DOCUMENTS_MIME",
    "BuiltPrompt",
    "ChatEvent",
    "ChatMode",
    "ChatRequest",
    "ChatResult",
    "ChatScope",
    "ChunkMatch",
    "ChunkRecord",
    "ChunkSource",
    "Document",
    "DocumentKind",
    "DocumentStatus",
    "FaqEmbedding",
    "IngestionResult",
    "Message",
    "RetrievalResult",
    "Role",
    "ScoredChunk",
    "Source",
    "Thread",
    "UrlSource",
    "VIRTUAL_DOCUMENTS",
    "WEB_CHAT_MIME",
]
