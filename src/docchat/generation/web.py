"""
Web-search answers via the OpenAI Responses API.

Web mode skips document retrieval: the model gets the conversation plus
the web_search_preview tool and decides what to look up. Cited URLs are
read back from the web_search_call items of the response (requested via
include=["web_search_call.action.sources"]).

Two ways to call it:

    client = WebSearchClient(openai.OpenAI(), ChatConfig())

    # Blocking
    text, sources = client.complete(question, history)

    # Streaming: iterate for text deltas, read sources afterwards
    stream = client.stream(question, history)
    for delta in stream:
        print(delta, end="")
    print(stream.sources)
"""

import logging
from typing import Any, Iterator, Optional

import openai

from docchat.config import ChatConfig
from docchat.errors import GenerationError
from docchat.models import Message, UrlSource

logger = logging.getLogger(__name__)

WEB_INSTRUCTIONS = (
    "한국어로 답하며, 최신 정보를 위해 웹 검색을 활용한다. 불확실하면 '확실하지 않습니다'라고 말한다. "
    "항상 가장 최근/공식 릴리스 노트·벤더 문서를 우선 사용하고, 오래된 정보는 배제한다. "
    "출력 형식: ## 핵심 요약(최신 날짜/버전 명시) → 상세(불릿 3~6개, 굵게 키워드) → 추가 팁/다음 단계(필요 시). "
    "답변에 출처/번호/링크/URL은 넣지 마라(출처 표시는 UI에서 처리)."
)


def _field(obj: Any, name: str) -> Any:
    """Read a field from an SDK object or a plain dict."""
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def extract_web_sources(response: Any, limit: int = 6) -> list[UrlSource]:
    """
    Collect cited URLs from a Responses API result.

    Only http(s) URLs from web_search_call actions count. Duplicates are
    dropped keeping first-seen order, then the list is capped at `limit`
    and numbered from 1.
    """
    urls: list[str] = []
    for item in _field(response, "output") or []:
        if _field(item, "type") != "web_search_call":
            continue
        action = _field(item, "action")
        for source in _field(action, "sources") or []:
            url = _field(source, "url")
            if isinstance(url, str) and url.startswith("http") and url not in urls:
                urls.append(url)

    return [UrlSource(url=url, order=i) for i, url in enumerate(urls[:limit], 1)]


class WebSearchStream:
    """
    Iterator over answer text deltas for one streamed web-search call.

    After iteration finishes, `text` holds the full answer and `sources`
    the cited URLs (empty when the stream ended without a completed
    response).
    """

    def __init__(self, events: Any, max_sources: int = 6):
        self._events = events
        self._max_sources = max_sources
        self.text = ""
        self.final_response: Optional[Any] = None

    def __iter__(self) -> Iterator[str]:
        for event in self._events:
            kind = _field(event, "type")
            if kind == "response.output_text.delta":
                delta = _field(event, "delta")
                if isinstance(delta, str) and delta:
                    self.text += delta
                    yield delta
            elif kind in ("error", "response.error", "response.failed"):
                error = _field(event, "error")
                message = _field(error, "message") or _field(event, "message") or "웹 검색 스트리밍 오류"
                raise GenerationError(str(message))
            elif kind == "response.completed":
                self.final_response = _field(event, "response")

    def close(self) -> None:
        close = getattr(self._events, "close", None)
        if callable(close):
            close()

    @property
    def sources(self) -> list[UrlSource]:
        if self.final_response is None:
            return []
        return extract_web_sources(self.final_response, self._max_sources)


class WebSearchClient:

    def __init__(self, client: openai.OpenAI, config: ChatConfig = None):
        self.client = client
        self.config = config or ChatConfig()

    def _request(self, question: str, history: list[Message]) -> dict:
        conversation = [{"role": m.role.value, "content": m.content} for m in history]
        conversation.append({"role": "user", "content": question})
        return {
            "model": self.config.web_model,
            "instructions": WEB_INSTRUCTIONS,
            "input": conversation,
            "tools": [{
                "type": "web_search_preview",
                "search_context_size": self.config.web_search_context_size,
            }],
            "tool_choice": "auto",
            "include": ["web_search_call.action.sources"],
            "temperature": self.config.web_temperature,
        }

    def complete(self, question: str, history: list[Message]) -> tuple[str, list[UrlSource]]:
        try:
            response = self.client.responses.create(**self._request(question, history))
        except openai.OpenAIError as exc:
            raise GenerationError(f"Web search failed: {exc}") from exc
        text = _field(response, "output_text") or ""
        return text, extract_web_sources(response, self.config.max_web_sources)

    def stream(self, question: str, history: list[Message]) -> WebSearchStream:
        try:
            events = self.client.responses.create(stream=True, **self._request(question, history))
        except openai.OpenAIError as exc:
            raise GenerationError(f"Web search failed: {exc}") from exc
        return WebSearchStream(events, self.config.max_web_sources)
