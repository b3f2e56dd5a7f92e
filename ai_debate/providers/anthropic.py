"""Anthropic Claude messages adapter with typed SSE events."""

import json
import logging

import httpx

from ai_debate.models import ChatTurn, ModelDescriptor
from ai_debate.providers.base import MAX_TOKENS, OPENING_INSTRUCTION, SSEAdapter

logger = logging.getLogger(__name__)

MESSAGES_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
TEXT_DELTA_EVENT = "content_block_delta"


class ClaudeAdapter(SSEAdapter):
    """Streams ``/v1/messages``; only ``content_block_delta`` events carry text.

    The stream has no sentinel line and ends when the body ends.
    """

    def build_request(
        self,
        client: httpx.AsyncClient,
        model: ModelDescriptor,
        system_prompt: str,
        history: list[ChatTurn],
        credential: str,
    ) -> httpx.Request:
        # The messages API rejects an empty list, so the opening turn gets a prompt.
        turns = list(history) or [ChatTurn("user", OPENING_INSTRUCTION)]
        return client.build_request(
            "POST",
            MESSAGES_URL,
            headers={
                "x-api-key": credential,
                "anthropic-version": ANTHROPIC_VERSION,
            },
            json={
                "model": model.model_id,
                "system": system_prompt,
                "messages": [t.as_dict() for t in turns],
                "stream": True,
                "max_tokens": MAX_TOKENS,
            },
        )

    def parse_payload(self, payload: str) -> str | None:
        try:
            event = json.loads(payload)
            if event.get("type") != TEXT_DELTA_EVENT:
                return None
            text = event["delta"].get("text")
        except (ValueError, KeyError, TypeError, AttributeError):
            logger.debug("Skipping unparsable SSE line: %.80s", payload)
            return None
        return text if isinstance(text, str) else None
