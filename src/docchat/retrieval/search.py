"""
Retrieval engine.

Given a question, prior turns and a scope, produce the prompt context:

    question ─→ build_retrieval_query ─→ embed ─→ vector search (k, floor)
                                                 ╰→ FAQ corpus (dot product, top n)
             ─→ relevance gate ─→ RetrievalResult

FAQ passages come first in the context, then document matches, and the
returned sources are numbered in that same order so that [n] in an answer
always points at sources[n - 1].

The gate answers without the LLM: greetings get a fixed welcome, and if
no candidate reaches RetrieverConfig.min_similarity the user is asked to
be more specific. Gated results carry no sources.
"""

import logging
from typing import Optional

from docchat.base.storage import BaseDocumentStore
from docchat.config import RetrieverConfig
from docchat.errors import DocChatError, RetrievalError
from docchat.indexing.embeddings import EmbeddingClient
from docchat.models import (
    ChatScope,
    ChunkMatch,
    ChunkSource,
    Message,
    RetrievalResult,
    ScoredChunk,
)
from docchat.retrieval.query import build_retrieval_query, is_greeting
from docchat.utils.helpers import dot_scores

logger = logging.getLogger(__name__)

GREETING_MESSAGE = "안녕하세요! 궁금한 내용을 말씀해 주세요. 업로드한 문서 기반으로 답변해 드릴게요."
NO_MATCH_MESSAGE = "관련된 문서를 찾지 못했습니다. 더 구체적으로 질문해 주세요."
FAQ_TITLE = "FAQ"


class Retriever:

    def __init__(
        self,
        store: BaseDocumentStore,
        embedder: EmbeddingClient,
        config: RetrieverConfig = None,
    ):
        self.store = store
        self.embedder = embedder
        self.config = config or RetrieverConfig()

    def retrieve(
        self,
        question: str,
        history: list[Message],
        user_id: str,
        scope: ChatScope,
        document_id: Optional[str] = None,
    ) -> RetrievalResult:
        """
        Args:
            question: The user's question as typed.
            history: Prior turns, oldest first (used for follow-up rewriting).
            user_id: Caller; bounds ALL_DOCUMENTS search.
            scope: DOCUMENT searches document_id only, ALL_DOCUMENTS every
                ready document the user can see. Anything else skips retrieval.
            document_id: Required for DOCUMENT scope.
        """
        if scope not in (ChatScope.DOCUMENT, ChatScope.ALL_DOCUMENTS):
            return RetrievalResult(query_used="")

        query = build_retrieval_query(
            question,
            history,
            min_chars=self.config.referential_min_chars,
            max_chars=self.config.query_max_chars,
        )

        if is_greeting(question):
            logger.info("Greeting detected; skipping search")
            return RetrievalResult(query_used=query, gate_message=GREETING_MESSAGE)

        embedding = self.embedder.embed_query(query)
        matches = self._search(embedding, user_id, document_id if scope == ChatScope.DOCUMENT else None)
        faq = self._faq_candidates(embedding)

        candidates = faq + [
            ScoredChunk(
                id=m.id,
                content=m.content,
                score=m.similarity,
                doc_title=m.doc_title,
                origin="document",
            )
            for m in matches
        ]

        best = max((c.score for c in candidates), default=None)
        if best is None or best < self.config.min_similarity:
            logger.info(
                "Relevance gate closed (best=%s, threshold=%.2f)", best, self.config.min_similarity,
            )
            return RetrievalResult(
                query_used=query,
                gate_message=NO_MATCH_MESSAGE,
                total_candidates=len(matches),
            )

        for rank, chunk in enumerate(candidates):
            chunk.rank = rank

        return RetrievalResult(
            query_used=query,
            documents=candidates,
            sources=[self._to_source(c) for c in candidates],
            total_candidates=len(matches),
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _search(self, embedding: list[float], user_id: str, document_id: Optional[str]) -> list[ChunkMatch]:
        try:
            matches = self.store.search_chunks(
                embedding,
                user_id=user_id,
                document_id=document_id,
                k=self.config.match_count,
                threshold=self.config.search_threshold,
            )
        except DocChatError:
            raise
        except Exception as exc:
            raise RetrievalError(f"Vector search failed: {exc}") from exc
        return sorted(matches, key=lambda m: m.similarity, reverse=True)

    def _faq_candidates(self, embedding: list[float]) -> list[ScoredChunk]:
        if self.config.faq_pool_size <= 0 or self.config.faq_top_n <= 0:
            return []
        try:
            rows = self.store.list_faq_embeddings(self.config.faq_pool_size)
        except Exception as exc:
            logger.warning("FAQ lookup failed, continuing without it: %s", exc)
            return []

        rows = [r for r in rows if r.embedding]
        if not rows:
            return []

        scores = dot_scores(embedding, [r.embedding for r in rows])
        ranked = sorted(zip(rows, scores), key=lambda pair: pair[1], reverse=True)
        return [
            ScoredChunk(
                id=f"faq-{row.faq_id or row.id}",
                content=row.content or "",
                score=float(score),
                doc_title=FAQ_TITLE,
                origin="faq",
            )
            for row, score in ranked[:self.config.faq_top_n]
        ]

    def _to_source(self, chunk: ScoredChunk) -> ChunkSource:
        return ChunkSource(
            id=chunk.id,
            order=chunk.rank + 1,
            similarity=chunk.score,
            snippet=chunk.content[:self.config.snippet_chars],
            doc_title=chunk.doc_title,
        )
