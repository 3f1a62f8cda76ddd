"""
Chat orchestration.

One user question becomes one persisted user message, one persisted
assistant message, and either a JSON result or a stream of events:

    prepare():  validate → resolve thread/document/scope → moderation
                → create thread → load history → persist user message
                → refusal | web plan | retrieval (gate | prompt)
    answer():   run the plan, return ChatResult
    stream():   run the plan, yield chunk* then done | error

prepare() does everything that can fail with a request-level error
(bad input, missing thread, moderation outage), so an HTTP layer can turn
those into status codes before committing to a streaming response.
answer() and stream() share one generator; only the model call differs
(invoke vs stream), so both persist exactly the same assistant message.

If a streaming client goes away, the rest of the model output is still
consumed and the full assistant message is stored.

Usage:
    orchestrator = ChatOrchestrator(store, threads, retriever, moderation, web, llm, titles)

    turn = orchestrator.prepare(user_id, ChatRequest(question="환불 정책은?", document_id=doc_id))
    result = orchestrator.answer(turn)          # or: for event in orchestrator.stream(turn)
"""

import logging
from typing import Iterator, Optional

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from pydantic import BaseModel, Field

from docchat.base.storage import BaseDocumentStore
from docchat.chat.routing import resolve_chat_scope
from docchat.chat.threads import ThreadManager, placeholder_title, should_replace_title
from docchat.config import ChatConfig
from docchat.errors import (
    GENERIC_ERROR_MESSAGE,
    DocChatError,
    GenerationError,
    NotFoundOrForbidden,
    PersistenceError,
    ValidationError,
)
from docchat.generation.moderation import ModerationClient
from docchat.generation.prompt import NOT_IN_DOCUMENT, build_prompt
from docchat.generation.title import TitleGenerator
from docchat.generation.web import WebSearchClient
from docchat.models import (
    BuiltPrompt,
    ChatEvent,
    ChatMode,
    ChatRequest,
    ChatResult,
    ChatScope,
    Document,
    DocumentKind,
    DocumentStatus,
    Message,
    Role,
    Source,
    Thread,
)
from docchat.retrieval.search import Retriever
from docchat.utils.helpers import message_text

logger = logging.getLogger(__name__)

MODERATION_BLOCK_MESSAGE = "요청하신 내용은 안전 정책상 도와드릴 수 없습니다. 다른 방식으로 질문해 주세요."
WEB_EMPTY_ANSWER = "검색 결과가 없습니다."
DOCUMENT_NOT_READY = "문서 처리 중입니다. 잠시 후 다시 시도해주세요."
QUESTION_REQUIRED = "question은 필수입니다."


class PreparedTurn(BaseModel):
    """
    Everything decided before generation starts.

    Exactly one of fixed_answer (refusal or gate message), prompt
    (document scopes) or scope == WEB describes what happens next.
    """

    user_id: str
    question: str
    thread: Thread
    document: Document
    scope: ChatScope
    history: list[Message] = Field(default_factory=list)
    flagged: bool = False
    replace_title: bool = False
    fixed_answer: Optional[str] = None
    prompt: Optional[BuiltPrompt] = None
    sources: list[Source] = Field(default_factory=list)


class ChatOrchestrator:

    def __init__(
        self,
        store: BaseDocumentStore,
        threads: ThreadManager,
        retriever: Retriever,
        moderation: ModerationClient,
        web: WebSearchClient,
        llm: BaseChatModel,
        titles: TitleGenerator,
        config: ChatConfig = None,
    ):
        self.store = store
        self.threads = threads
        self.retriever = retriever
        self.moderation = moderation
        self.web = web
        self.llm = llm
        self.titles = titles
        self.config = config or ChatConfig()

    # ------------------------------------------------------------------
    # Preparation
    # ------------------------------------------------------------------

    def prepare(self, user_id: str, request: ChatRequest) -> PreparedTurn:
        question = request.question
        if not question or not question.strip():
            raise ValidationError(QUESTION_REQUIRED)

        thread: Optional[Thread] = None
        document_id = request.document_id
        if request.thread_id:
            thread = self.threads.get_thread(user_id, request.thread_id)
            document_id = thread.document_id
        elif request.mode == ChatMode.WEB:
            document_id = None

        document = self._load_document(user_id, document_id) if document_id else None

        bound_kind = document.kind if document else None
        ready_count = 0
        if bound_kind is None and request.mode == ChatMode.DOCUMENT:
            ready_count = self.store.count_ready_documents(user_id)
        scope = resolve_chat_scope(request.mode, bound_kind, ready_count)

        if document is None:
            kind = DocumentKind.WEB_CHAT if scope == ChatScope.WEB else DocumentKind.ALL_DOCUMENTS
            document = self.threads.ensure_virtual_document(user_id, kind)

        if scope == ChatScope.DOCUMENT and document.status != DocumentStatus.READY:
            raise ValidationError(DOCUMENT_NOT_READY)

        flagged = self.moderation.is_flagged(question)
        candidate = self.threads.title_candidate(question)

        if thread is None:
            title = placeholder_title(document) if flagged or not candidate else candidate
            thread = self._persist(lambda: self.threads.start_thread(user_id, document, title),
                                   "스레드를 생성할 수 없습니다.")

        limit = self.config.web_history_limit if scope == ChatScope.WEB else self.config.doc_history_limit
        history = self.store.recent_messages(thread.id, limit)

        self._persist(
            lambda: self.store.insert_message(
                Message(thread_id=thread.id, owner_id=user_id, role=Role.USER, content=question)
            ),
            "메시지 저장에 실패했습니다.",
        )

        replace_title = should_replace_title(thread.title, document)
        if not flagged and replace_title and candidate:
            self.threads.update_title(thread.id, candidate)
            thread = thread.model_copy(update={"title": candidate})

        turn = PreparedTurn(
            user_id=user_id,
            question=question,
            thread=thread,
            document=document,
            scope=scope,
            history=history,
            flagged=flagged,
            replace_title=replace_title,
        )

        if flagged:
            turn.fixed_answer = MODERATION_BLOCK_MESSAGE
        elif scope != ChatScope.WEB:
            retrieval = self.retriever.retrieve(
                question,
                history,
                user_id=user_id,
                scope=scope,
                document_id=document.id if scope == ChatScope.DOCUMENT else None,
            )
            if retrieval.gated:
                turn.fixed_answer = retrieval.gate_message
            else:
                turn.prompt = build_prompt(question, retrieval.documents)
                turn.sources = list(retrieval.sources)

        logger.info(
            "Prepared turn thread=%s scope=%s flagged=%s fixed=%s",
            thread.id, scope.value, flagged, turn.fixed_answer is not None,
        )
        return turn

    def _load_document(self, user_id: str, document_id: str) -> Document:
        document = self.store.get_document(document_id)
        if document is None or not document.visible_to(user_id):
            raise NotFoundOrForbidden()
        return document

    @staticmethod
    def _persist(write, failure_message: str):
        try:
            return write()
        except DocChatError:
            raise
        except Exception as exc:
            raise PersistenceError(f"{failure_message} ({exc})") from exc

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    def answer(self, turn: PreparedTurn) -> ChatResult:
        """Run the turn to completion. Errors propagate as DocChatError."""
        done: Optional[ChatEvent] = None
        for event in self._run(turn, streaming=False):
            if event.type == "done":
                done = event
        return ChatResult(thread_id=done.thread_id, answer=done.answer, sources=done.sources or [])

    def stream(self, turn: PreparedTurn) -> Iterator[ChatEvent]:
        """
        Yield chunk events, then one done or error event.

        Errors never escape: they become an error event with a user-safe
        message. Closing the iterator early drains and persists the answer.
        """
        events = self._run(turn, streaming=True)
        try:
            for event in events:
                yield event
        except GeneratorExit:
            logger.info("Client left thread %s mid-stream; finishing answer", turn.thread.id)
            self._drain(events)
            raise
        except DocChatError as exc:
            logger.error("Chat turn failed (thread=%s): %s", turn.thread.id, exc)
            yield ChatEvent.error(exc.user_message)
        except Exception:
            logger.exception("Unexpected error in chat turn (thread=%s)", turn.thread.id)
            yield ChatEvent.error(GENERIC_ERROR_MESSAGE)

    @staticmethod
    def _drain(events: Iterator[ChatEvent]) -> None:
        try:
            for _ in events:
                pass
        except Exception:
            logger.exception("Answer could not be completed after disconnect")

    def _run(self, turn: PreparedTurn, streaming: bool) -> Iterator[ChatEvent]:
        if turn.fixed_answer is not None:
            answer, sources = turn.fixed_answer, []
            if streaming:
                yield ChatEvent.chunk(answer)

        elif turn.scope == ChatScope.WEB:
            if streaming:
                web_stream = self.web.stream(turn.question, turn.history)
                for delta in web_stream:
                    yield ChatEvent.chunk(delta)
                answer, sources = web_stream.text, web_stream.sources
            else:
                answer, sources = self.web.complete(turn.question, turn.history)
            answer = answer or WEB_EMPTY_ANSWER

        else:
            messages = self._messages(turn)
            parts = []
            try:
                if streaming:
                    for chunk in self.llm.stream(messages):
                        text = message_text(chunk)
                        if text:
                            parts.append(text)
                            yield ChatEvent.chunk(text)
                else:
                    parts.append(message_text(self.llm.invoke(messages)))
            except GeneratorExit:
                raise
            except Exception as exc:
                raise GenerationError(f"Answer generation failed: {exc}") from exc
            answer = "".join(parts)
            if not answer.strip():
                answer = NOT_IN_DOCUMENT
            sources = turn.sources

        self._finish(turn, answer, sources)
        yield ChatEvent.done(answer, sources, turn.thread.id)

    def _messages(self, turn: PreparedTurn) -> list[BaseMessage]:
        messages: list[BaseMessage] = [SystemMessage(content=turn.prompt.system)]
        for message in turn.history:
            if message.role == Role.USER:
                messages.append(HumanMessage(content=message.content))
            elif message.role == Role.ASSISTANT:
                messages.append(AIMessage(content=message.content))
        messages.append(HumanMessage(content=turn.prompt.user))
        return messages

    def _finish(self, turn: PreparedTurn, answer: str, sources: list) -> None:
        self._persist(
            lambda: self.store.insert_message(Message(
                thread_id=turn.thread.id,
                owner_id=turn.user_id,
                role=Role.ASSISTANT,
                content=answer,
                sources=sources,
            )),
            "답변 저장에 실패했습니다.",
        )

        if turn.fixed_answer is None and turn.replace_title:
            title = self.titles.generate(turn.question)
            if title:
                try:
                    self.threads.update_title(turn.thread.id, title)
                except Exception as exc:
                    logger.warning("Could not store generated title: %s", exc)
