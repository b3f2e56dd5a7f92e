"""OpenAI-compatible chat completions adapter (OpenAI, Deepseek, Groq)."""

import json
import logging

import httpx

from ai_debate.models import ChatTurn, ModelDescriptor
from ai_debate.providers.base import MAX_TOKENS, SSEAdapter

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com"
DONE_SENTINEL = "[DONE]"


class OpenAICompatibleAdapter(SSEAdapter):
    """Streams ``/v1/chat/completions`` and reads ``choices[0].delta.content``."""

    def build_request(
        self,
        client: httpx.AsyncClient,
        model: ModelDescriptor,
        system_prompt: str,
        history: list[ChatTurn],
        credential: str,
    ) -> httpx.Request:
        base_url = (model.base_url or DEFAULT_BASE_URL).rstrip("/")
        messages = [ChatTurn("system", system_prompt)] + list(history)
        return client.build_request(
            "POST",
            f"{base_url}/v1/chat/completions",
            headers={"Authorization": f"Bearer {credential}"},
            json={
                "model": model.model_id,
                "messages": [m.as_dict() for m in messages],
                "stream": True,
                "max_tokens": MAX_TOKENS,
            },
        )

    def is_terminator(self, payload: str) -> bool:
        return payload.strip() == DONE_SENTINEL

    def parse_payload(self, payload: str) -> str | None:
        try:
            event = json.loads(payload)
            content = event["choices"][0]["delta"].get("content")
        except (ValueError, KeyError, IndexError, TypeError, AttributeError):
            logger.debug("Skipping unparsable SSE line: %.80s", payload)
            return None
        return content if isinstance(content, str) else None
