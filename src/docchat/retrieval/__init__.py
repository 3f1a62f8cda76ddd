from .query import build_retrieval_query, is_greeting, is_referential_question
from .search import GREETING_MESSAGE, NO_MATCH_MESSAGE, Retriever

__all__ = [
    "GREETING_MESSAGE",
    "NO_MATCH_MESSAGE",
    "Retriever",
    "build_retrieval_query",
    "is_greeting",
    "is_referential_question",
]
