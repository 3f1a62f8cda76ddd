"""
Result models for the pipeline stages.

These are what each stage hands to the next: retrieval produces a
RetrievalResult, the prompt builder a BuiltPrompt, ingestion an
IngestionResult.
"""

from typing import Optional

from pydantic import BaseModel, Field

from .chat import ChunkSource
from .document import DocumentStatus, ScoredChunk


# ---------------------------------------------------------------------------
# Retrieval results
# ---------------------------------------------------------------------------

class RetrievalResult(BaseModel):
    """
    Output of the retrieval stage.

    When gate_message is set the turn is answered with that fixed text and
    documents/sources are empty. Otherwise documents is the prompt context
    in citation order and sources numbers them the same way.
    """

    query_used: str = Field(description="The text that was embedded for search")
    documents: list[ScoredChunk] = Field(default_factory=list)
    sources: list[ChunkSource] = Field(default_factory=list)
    gate_message: Optional[str] = None
    total_candidates: int = Field(default=0, description="Rows returned by vector search")

    @property
    def gated(self) -> bool:
        return self.gate_message is not None


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------

class BuiltPrompt(BaseModel):
    system: str
    user: str


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------

class IngestionResult(BaseModel):
    document_id: str
    status: DocumentStatus
    chunk_count: int = 0
    error_message: Optional[str] = None
