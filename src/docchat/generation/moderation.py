"""
Content moderation.

Every question is screened before anything else happens to it. Being
flagged is an ordinary outcome (the orchestrator answers with a fixed
refusal); only a failing moderation call is an error.
"""

import logging

import openai

from docchat.config import ChatConfig
from docchat.errors import ModerationServiceError

logger = logging.getLogger(__name__)


class ModerationClient:

    def __init__(self, client: openai.OpenAI, config: ChatConfig = None):
        self.client = client
        self.config = config or ChatConfig()

    def is_flagged(self, text: str) -> bool:
        try:
            response = self.client.moderations.create(model=self.config.moderation_model, input=text)
        except Exception as exc:
            logger.error("Moderation call failed: %s", exc)
            raise ModerationServiceError() from exc

        results = getattr(response, "results", None) or []
        flagged = bool(results and results[0].flagged)
        if flagged:
            logger.info("Question flagged by moderation")
        return flagged
