"""
Chat-side data models: threads, messages, sources, requests and events.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .document import new_id, utcnow


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ChatMode(str, Enum):
    """What the caller asked for. 'auto' behaves like web when no document is bound."""

    DOCUMENT = "document"
    WEB = "web"
    AUTO = "auto"


class ChatScope(str, Enum):
    """What the orchestrator actually does for a turn."""

    DOCUMENT = "document"
    ALL_DOCUMENTS = "all_documents"
    WEB = "web"
    NONE = "none"


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------

class ChunkSource(BaseModel):
    type: Literal["chunk"] = "chunk"
    id: str
    order: int = Field(description="1-based citation number, matches [n] in the prompt")
    similarity: float
    snippet: str
    doc_title: Optional[str] = None


class UrlSource(BaseModel):
    type: Literal["url"] = "url"
    url: str
    order: int
    title: Optional[str] = None


Source = Annotated[Union[ChunkSource, UrlSource], Field(discriminator="type")]


# ---------------------------------------------------------------------------
# Threads and messages
# ---------------------------------------------------------------------------

class Thread(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=new_id)
    document_id: str
    owner_id: str
    title: str = ""
    created_at: datetime = Field(default_factory=utcnow)


class Message(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=new_id)
    thread_id: str
    owner_id: str
    role: Role
    content: str
    sources: list[Source] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)


# ---------------------------------------------------------------------------
# Requests, results, stream events
# ---------------------------------------------------------------------------

class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question: str
    thread_id: Optional[str] = Field(default=None, alias="threadId")
    document_id: Optional[str] = Field(default=None, alias="documentId")
    mode: ChatMode = ChatMode.AUTO


class ChatResult(BaseModel):
    thread_id: str
    answer: str
    sources: list[Source] = Field(default_factory=list)


class ChatEvent(BaseModel):
    """
    One element of the streamed reply.

    type="chunk" carries text; "done" carries answer, sources and thread_id;
    "error" carries message. to_wire() produces the JSON shape clients expect.
    """

    type: Literal["chunk", "done", "error"]
    text: Optional[str] = None
    answer: Optional[str] = None
    sources: Optional[list[Source]] = None
    thread_id: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def chunk(cls, text: str) -> "ChatEvent":
        return cls(type="chunk", text=text)

    @classmethod
    def done(cls, answer: str, sources: list, thread_id: str) -> "ChatEvent":
        return cls(type="done", answer=answer, sources=sources, thread_id=thread_id)

    @classmethod
    def error(cls, message: str) -> "ChatEvent":
        return cls(type="error", message=message)

    def to_wire(self) -> dict:
        if self.type == "chunk":
            return {"type": "chunk", "text": self.text}
        if self.type == "done":
            return {
                "type": "done",
                "answer": self.answer,
                "sources": [s.model_dump(exclude_none=True) for s in self.sources or []],
                "threadId": self.thread_id,
            }
        return {"type": "error", "message": self.message}
