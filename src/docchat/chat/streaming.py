"""
Server-Sent Events framing.

Each ChatEvent becomes one `data: {json}\\n\\n` frame. Non-ASCII text is
sent as-is (UTF-8) rather than \\u-escaped.
"""

import json
from typing import Iterable, Iterator

from docchat.models import ChatEvent

SSE_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
}


def encode_sse(event: ChatEvent) -> str:
    return f"data: {json.dumps(event.to_wire(), ensure_ascii=False)}\n\n"


def sse_stream(events: Iterable[ChatEvent]) -> Iterator[str]:
    """
    Frame an event iterator.

    Closing this generator closes the underlying one, which is how a
    client disconnect reaches the orchestrator.
    """
    iterator = iter(events)
    try:
        for event in iterator:
            yield encode_sse(event)
    finally:
        close = getattr(iterator, "close", None)
        if callable(close):
            close()
