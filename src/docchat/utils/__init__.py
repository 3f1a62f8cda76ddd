from .helpers import collapse_whitespace, cosine_scores, dot_scores, get_llm, message_text, truncate

__all__ = [
    "collapse_whitespace",
    "cosine_scores",
    "dot_scores",
    "get_llm",
    "message_text",
    "truncate",
]
