from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from docchat.api.auth import current_user
from docchat.chat.streaming import SSE_HEADERS, sse_stream
from docchat.models import ChatMode, ChatRequest

router = APIRouter(tags=["chat"])


class NewChatRequest(BaseModel):
    mode: ChatMode = ChatMode.DOCUMENT
    title: Optional[str] = None


def wants_stream(request: Request, stream: Optional[str]) -> bool:
    return stream == "1" or "text/event-stream" in request.headers.get("accept", "")


@router.post("/chat")
def chat(
    request: Request,
    body: ChatRequest,
    stream: Optional[str] = Query(default=None),
    user_id: str = Depends(current_user),
):
    """Answer one question, as JSON or as an SSE stream.

    Request-level failures (validation, not found, moderation outage) are
    raised before streaming starts and come back as JSON errors.
    """
    orchestrator = request.app.state.services.orchestrator
    turn = orchestrator.prepare(user_id, body)

    if wants_stream(request, stream):
        return StreamingResponse(
            sse_stream(orchestrator.stream(turn)),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
        )

    result = orchestrator.answer(turn)
    return {
        "threadId": result.thread_id,
        "answer": result.answer,
        "sources": [s.model_dump(exclude_none=True) for s in result.sources],
    }


@router.post("/chats")
def create_chat(request: Request, body: NewChatRequest, user_id: str = Depends(current_user)):
    thread = request.app.state.services.threads.create_thread(user_id, body.mode, body.title)
    return {"threadId": thread.id}


@router.delete("/chats/{thread_id}")
def delete_chat(request: Request, thread_id: str, user_id: str = Depends(current_user)):
    request.app.state.services.threads.delete_thread(user_id, thread_id)
    return {"ok": True}
