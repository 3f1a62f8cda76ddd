"""
Thread title generation.

After the first real answer in a thread, a small model condenses the
question into a short title. Best effort: any failure leaves the current
title in place.
"""

import logging
import re
from typing import Optional

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from docchat.utils.helpers import message_text

logger = logging.getLogger(__name__)

TITLE_SYSTEM_PROMPT = (
    "다음 한국어 질문을 12자 이내의 짧은 제목으로 요약하세요. "
    "마침표/따옴표/이모지는 넣지 말고, 핵심 키워드만 남기세요."
)

_QUOTES = re.compile(r"[\"'`]")


class TitleGenerator:

    def __init__(self, llm: BaseChatModel, max_chars: int = 24):
        self.llm = llm
        self.max_chars = max_chars

    def generate(self, question: str) -> Optional[str]:
        try:
            response = self.llm.invoke([
                SystemMessage(content=TITLE_SYSTEM_PROMPT),
                HumanMessage(content=question),
            ])
        except Exception as exc:
            logger.warning("Title generation failed: %s", exc)
            return None

        title = _QUOTES.sub("", message_text(response).strip())[:self.max_chars]
        return title or None
