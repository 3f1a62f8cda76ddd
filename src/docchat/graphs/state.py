"""
LangGraph state definitions.

LangGraph graphs pass a state dict between nodes. Each node receives
the full state, reads what it needs, and returns updates. TypedDict
keeps it lightweight (LangGraph requires TypedDict, not BaseModel).

    IngestionState: load → validate → claim → download → extract → chunk → embed → persist → finish

Usage:
    from docchat.graphs.state import IngestionState
"""

from typing import Optional

from typing_extensions import TypedDict

from docchat.models import Document, DocumentStatus


class IngestionState(TypedDict, total=False):
    """
    State for the ingestion graph.

    Fields are populated by different nodes:
        - document_id:     set at start
        - document:        set by load
        - rejected_reason: set by validate when the MIME type is not allowed
        - data:            set by download
        - text:            set by extract
        - chunks:          set by chunk
        - embeddings:      set by embed (index-aligned with chunks)
        - chunk_count:     set by persist
        - status:          set by reject / finish
    """

    # Input
    document_id: str

    # After load / validate
    document: Document
    rejected_reason: Optional[str]

    # Work products
    data: bytes
    text: str
    chunks: list[str]
    embeddings: list[list[float]]

    # Output
    chunk_count: int
    status: DocumentStatus
