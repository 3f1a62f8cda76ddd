"""
Basic chat example: upload a file and ask about it, without the HTTP layer.

This script:
    1. Builds the services from the environment (.env with OPENAI_API_KEY)
    2. Uploads and ingests a PDF
    3. Asks a question (blocking), then a follow-up (streamed)
    4. Asks a web-search question

Run:
    python examples/basic_chat.py data/handbook.pdf
"""

import sys

from docchat.config import AppConfig
from docchat.logging_config import setup_logging
from docchat.models import ChatMode, ChatRequest
from docchat.services import build_services

USER_ID = "example-user"


def main(path: str):
    config = AppConfig()
    setup_logging(config.log_level)
    services = build_services(config)

    # --- Upload + ingest ---
    with open(path, "rb") as f:
        document = services.documents.upload(USER_ID, path.rsplit("/", 1)[-1], f.read())
    result = services.documents.ingest(document.id)
    print(f"{document.title}: {result.status.value} ({result.chunk_count} chunks)")

    # --- Blocking answer ---
    orchestrator = services.orchestrator
    turn = orchestrator.prepare(USER_ID, ChatRequest(question="이 문서의 핵심 내용은?", document_id=document.id))
    answer = orchestrator.answer(turn)
    print(f"\nA: {answer.answer}")
    for source in answer.sources:
        print(f"   [{source.order}] {source.snippet[:60]}")

    # --- Streamed follow-up in the same thread ---
    follow_up = orchestrator.prepare(USER_ID, ChatRequest(question="그거 더 자세히", thread_id=answer.thread_id))
    print("\nA: ", end="")
    for event in orchestrator.stream(follow_up):
        if event.type == "chunk":
            print(event.text, end="", flush=True)
        elif event.type == "error":
            print(f"\n(error) {event.message}")
    print()

    # --- Web search ---
    web = orchestrator.answer(orchestrator.prepare(
        USER_ID, ChatRequest(question="오늘 주요 IT 뉴스 알려줘", mode=ChatMode.WEB),
    ))
    print(f"\nWeb: {web.answer}")
    for source in web.sources:
        print(f"   [{source.order}] {source.url}")


if __name__ == "__main__":
    main(sys.argv[1] if len(sys.argv) > 1 else "data/handbook.pdf")
