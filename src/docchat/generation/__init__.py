from .moderation import ModerationClient
from .prompt import NOT_IN_DOCUMENT, SYSTEM_PROMPT, build_prompt
from .title import TitleGenerator
from .web import WebSearchClient, WebSearchStream, extract_web_sources

__all__ = [
    "ModerationClient",
    "NOT_IN_DOCUMENT",
    "SYSTEM_PROMPT",
    "TitleGenerator",
    "WebSearchClient",
    "WebSearchStream",
    "build_prompt",
    "extract_web_sources",
]
