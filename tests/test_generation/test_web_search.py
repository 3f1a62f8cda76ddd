"""Tests for web-search answers (the OpenAI client is a MagicMock)."""

from unittest.mock import MagicMock

import httpx
import openai
import pytest

from docchat.config import ChatConfig
from docchat.errors import GenerationError
from docchat.generation.web import (
    WEB_INSTRUCTIONS,
    WebSearchClient,
    WebSearchStream,
    extract_web_sources,
)
from docchat.models import Message, Role


def search_response(*urls, text="웹 답변"):
    return {
        "output_text": text,
        "output": [
            {"type": "web_search_call", "action": {"sources": [{"url": u} for u in urls]}},
            {"type": "message", "content": []},
        ],
    }


class TestExtractWebSources:

    def test_dedupes_and_numbers(self):
        response = search_response("https://a.com", "https://b.com", "https://a.com")
        sources = extract_web_sources(response)
        assert [(s.order, s.url) for s in sources] == [(1, "https://a.com"), (2, "https://b.com")]
        assert all(s.type == "url" for s in sources)

    def test_skips_non_http(self):
        sources = extract_web_sources(search_response("ftp://x", "javascript:alert(1)", "http://ok.com"))
        assert [s.url for s in sources] == ["http://ok.com"]

    def test_limit(self):
        urls = [f"https://site{i}.com" for i in range(10)]
        assert len(extract_web_sources(search_response(*urls), limit=6)) == 6

    def test_sdk_objects(self):
        source = MagicMock(url="https://sdk.com")
        item = MagicMock(type="web_search_call", action=MagicMock(sources=[source]))
        response = MagicMock(output=[item])
        assert [s.url for s in extract_web_sources(response)] == ["https://sdk.com"]

    def test_no_output(self):
        assert extract_web_sources({}) == []


class TestWebSearchStream:

    def test_yields_deltas_and_collects_sources(self):
        events = [
            {"type": "response.created"},
            {"type": "response.output_text.delta", "delta": "최신 "},
            {"type": "response.output_text.delta", "delta": "정보"},
            {"type": "response.completed", "response": search_response("https://a.com")},
        ]
        stream = WebSearchStream(iter(events))

        assert list(stream) == ["최신 ", "정보"]
        assert stream.text == "최신 정보"
        assert [s.url for s in stream.sources] == ["https://a.com"]

    def test_no_sources_without_completion(self):
        stream = WebSearchStream(iter([{"type": "response.output_text.delta", "delta": "x"}]))
        list(stream)
        assert stream.sources == []

    def test_error_event_raises(self):
        events = [
            {"type": "response.output_text.delta", "delta": "부분"},
            {"type": "response.failed", "error": {"message": "rate limited"}},
        ]
        with pytest.raises(GenerationError, match="rate limited"):
            list(WebSearchStream(iter(events)))

    def test_close_closes_underlying_stream(self):
        events = MagicMock()
        WebSearchStream(events).close()
        events.close.assert_called_once()


class TestWebSearchClient:

    def test_request_shape(self):
        client = MagicMock()
        client.responses.create.return_value = search_response("https://a.com", text="답")
        history = [
            Message(thread_id="t", owner_id="u", role=Role.USER, content="이전 질문"),
            Message(thread_id="t", owner_id="u", role=Role.ASSISTANT, content="이전 답변"),
        ]

        text, sources = WebSearchClient(client, ChatConfig()).complete("오늘 뉴스?", history)

        assert text == "답"
        assert [s.url for s in sources] == ["https://a.com"]
        kwargs = client.responses.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["instructions"] == WEB_INSTRUCTIONS
        assert kwargs["input"] == [
            {"role": "user", "content": "이전 질문"},
            {"role": "assistant", "content": "이전 답변"},
            {"role": "user", "content": "오늘 뉴스?"},
        ]
        assert kwargs["tools"] == [{"type": "web_search_preview", "search_context_size": "medium"}]
        assert kwargs["include"] == ["web_search_call.action.sources"]

    def test_stream_requests_streaming(self):
        client = MagicMock()
        client.responses.create.return_value = iter([])

        stream = WebSearchClient(client).stream("질문", [])

        assert isinstance(stream, WebSearchStream)
        assert client.responses.create.call_args.kwargs["stream"] is True

    def test_api_error_wrapped(self):
        client = MagicMock()
        request = httpx.Request("POST", "https://api.openai.com/v1/responses")
        client.responses.create.side_effect = openai.APIConnectionError(request=request)

        with pytest.raises(GenerationError):
            WebSearchClient(client).complete("질문", [])
