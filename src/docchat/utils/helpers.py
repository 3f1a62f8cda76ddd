"""
Shared utility functions.

Helpers used across the package: LLM factory, text normalisation,
vector math.
"""

import re
from typing import Any

import numpy as np
from langchain_core.language_models.chat_models import BaseChatModel

from docchat.config import LLMConfig, LLMProvider

_WHITESPACE = re.compile(r"\s+")


def get_llm(config: LLMConfig) -> BaseChatModel:
    """
    Factory that returns a LangChain chat model based on config.

    Lazy imports so you only need the package for the provider you
    actually use.

    Used by:
        - chat/orchestrator.py (document answers)
        - generation/title.py (thread titles)
        - indexing/extraction.py (vision OCR)
    """
    if config.provider == LLMProvider.OPENAI:
        from langchain_openai import ChatOpenAI

        return ChatOpenAI(
            model=config.model_name,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
        )

    elif config.provider == LLMProvider.ANTHROPIC:
        from langchain_anthropic import ChatAnthropic

        return ChatAnthropic(
            model=config.model_name,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
        )

    else:
        raise ValueError(
            f"Unknown LLM provider: '{config.provider}'. "
            f"Supported: 'openai', 'anthropic'."
        )


def message_text(message: Any) -> str:
    """
    Plain text of a LangChain message or chunk.

    content is a str for most providers but a list of content blocks for
    some (Anthropic, multimodal); text blocks are concatenated.
    """
    content = getattr(message, "content", message)
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    parts = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE.sub(" ", text or "").strip()


def truncate(text: str, limit: int) -> str:
    return text[:limit] if len(text) > limit else text


def dot_scores(query: list[float], vectors: list[list[float]]) -> np.ndarray:
    """Dot product of one query against many vectors."""
    if not vectors:
        return np.zeros(0)
    return np.asarray(vectors, dtype=float) @ np.asarray(query, dtype=float)


def cosine_scores(query: list[float], vectors: list[list[float]]) -> np.ndarray:
    """Cosine similarity of one query against many vectors; zero vectors score 0."""
    if not vectors:
        return np.zeros(0)
    matrix = np.asarray(vectors, dtype=float)
    q = np.asarray(query, dtype=float)
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(q)
    with np.errstate(divide="ignore", invalid="ignore"):
        scores = np.where(norms > 0, (matrix @ q) / norms, 0.0)
    return scores
