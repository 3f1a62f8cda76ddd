"""
Embedding client.

Wraps the OpenAI embeddings endpoint. Texts are sent in batches of
EmbeddingConfig.batch_size; within each batch the provider may return
items in any order, so results are re-sorted by their `index` before
being concatenated. Output i always belongs to input i.

There is no partial success: any failed batch fails the whole call.

Usage:
    from docchat.indexing.embeddings import EmbeddingClient
    from docchat.config import EmbeddingConfig

    embedder = EmbeddingClient(EmbeddingConfig())
    vectors = embedder.embed_documents(["first chunk", "second chunk"])
    query_vector = embedder.embed_query("what is in the report?")
"""

import logging
from typing import Optional

import openai

from docchat.config import EmbeddingConfig
from docchat.errors import EmbeddingProviderError

logger = logging.getLogger(__name__)


class EmbeddingClient:

    def __init__(self, config: EmbeddingConfig, client: Optional[openai.OpenAI] = None):
        self.config = config
        self._client = client

    @property
    def client(self) -> openai.OpenAI:
        if self._client is None:
            if not self.config.api_key:
                raise EmbeddingProviderError("OPENAI_API_KEY is not configured")
            self._client = openai.OpenAI(api_key=self.config.api_key)
        return self._client

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        vectors: list[list[float]] = []
        size = self.config.batch_size
        for start in range(0, len(texts), size):
            batch = texts[start:start + size]
            vectors.extend(self._embed_batch(batch))
            logger.debug("Embedded batch %d-%d", start, start + len(batch))
        return vectors

    def embed_query(self, text: str) -> list[float]:
        return self._embed_batch([text])[0]

    def _embed_batch(self, batch: list[str]) -> list[list[float]]:
        client = self.client
        try:
            response = client.embeddings.create(model=self.config.model_name, input=batch)
        except openai.OpenAIError as exc:
            raise EmbeddingProviderError(f"Embedding request failed: {exc}") from exc

        items = sorted(response.data, key=lambda item: item.index)
        if len(items) != len(batch):
            raise EmbeddingProviderError(
                f"Embedding count mismatch: sent {len(batch)}, got {len(items)}"
            )
        return [list(item.embedding) for item in items]
