from .orchestrator import MODERATION_BLOCK_MESSAGE, ChatOrchestrator, PreparedTurn
from .routing import resolve_chat_scope
from .streaming import SSE_HEADERS, encode_sse, sse_stream
from .threads import ThreadManager, placeholder_title, should_replace_title

__all__ = [
    "ChatOrchestrator",
    "MODERATION_BLOCK_MESSAGE",
    "PreparedTurn",
    "SSE_HEADERS",
    "ThreadManager",
    "encode_sse",
    "placeholder_title",
    "resolve_chat_scope",
    "should_replace_title",
    "sse_stream",
]
