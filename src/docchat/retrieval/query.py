"""
Query shaping for retrieval.

Follow-up questions ("그거 더 자세히", "what about that?") embed badly on
their own, so short or referential questions are prefixed with the user's
previous message before being embedded. Greetings are recognised here too
so the retriever can answer them without a search.

Usage:
    from docchat.retrieval.query import build_retrieval_query

    build_retrieval_query("그거 더 자세히", history)
    # → "환불 정책 알려줘\\n그거 더 자세히"
"""

import re
from typing import Optional

from docchat.models import Message, Role
from docchat.utils.helpers import collapse_whitespace

REFERENTIAL_PATTERN = re.compile(
    r"(?:그거|이거|저거|그것|이것|저것|위에서|앞에서|아까|방금|추가로|더 자세히|다시"
    r"|\bthat\b|\bthis\b|\bearlier\b|\babove\b|more specifically)",
    re.IGNORECASE,
)

GREETING_PATTERN = re.compile(r"^(안녕|안녕하세요|ㅎㅇ|하이|hello|hi|hey)$")


def is_referential_question(question: str, min_chars: int = 15) -> bool:
    """Short questions, or ones that point back at earlier turns."""
    trimmed = question.strip()
    if len(trimmed) < min_chars:
        return True
    return bool(REFERENTIAL_PATTERN.search(trimmed))


def is_greeting(question: str) -> bool:
    return bool(GREETING_PATTERN.match(question.strip().lower()))


def last_user_message(history: list[Message]) -> Optional[str]:
    for message in reversed(history):
        if message.role == Role.USER and message.content.strip():
            return message.content
    return None


def build_retrieval_query(
    question: str,
    history: list[Message],
    min_chars: int = 15,
    max_chars: int = 800,
) -> str:
    """
    Text to embed for search.

    The question with whitespace collapsed; when it is referential and a
    previous user message exists, "{previous}\\n{question}" cut to max_chars.
    """
    normalized = collapse_whitespace(question)
    previous = last_user_message(history)
    if previous and is_referential_question(normalized, min_chars):
        return f"{previous.strip()}\n{normalized}"[:max_chars]
    return normalized
