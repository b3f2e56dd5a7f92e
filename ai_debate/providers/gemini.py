"""Gemini generateContent adapter with simulated word-by-word streaming."""

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx

from ai_debate.models import ChatTurn, ModelDescriptor
from ai_debate.providers.base import (
    MAX_TOKENS,
    OPENING_INSTRUCTION,
    ProviderAdapter,
    TransportError,
    UnparsableResponse,
    raise_for_status,
    redact,
)

logger = logging.getLogger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"
DEFAULT_WORD_DELAY_SEC = 0.05
TEMPERATURE = 0.7


def generate_content_url(model_id: str) -> str:
    return f"{GEMINI_BASE_URL}/{model_id}:generateContent"


def user_contents(text: str) -> list[dict[str, Any]]:
    return [{"parts": [{"text": text}], "role": "user"}]


def extract_text(payload: Any) -> str | None:
    """Return ``candidates[0].content.parts[0].text`` or None when absent."""
    try:
        text = payload["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) else None


async def send_generate_content(
    client: httpx.AsyncClient,
    provider_name: str,
    request: httpx.Request,
) -> str:
    """Issue one blocking generateContent call and return the reply text.

    Raises:
        TransportError: On network failure.
        BadServerResponse: On a non-200 HTTP status.
        UnparsableResponse: When the body is not JSON or carries no text.
    """
    try:
        response = await client.send(request)
    except httpx.TransportError as exc:
        raise TransportError(provider_name, f"Request failed: {redact(str(exc))}") from exc

    await raise_for_status(response, provider_name)

    try:
        payload = response.json()
    except ValueError as exc:
        raise UnparsableResponse(provider_name, "Response body is not JSON") from exc

    text = extract_text(payload)
    if text is None:
        raise UnparsableResponse(provider_name, "No candidate text in response")
    return text


def split_words(text: str) -> list[str]:
    """Split on spaces, keeping line breaks inside words so Markdown survives."""
    return [f"{word} " for word in text.split(" ") if word]


class GeminiAdapter(ProviderAdapter):
    """Single-shot Gemini call replayed as a word-by-word stream.

    Gemini is not server-streamed here: the whole reply is fetched, then
    yielded one word at a time with ``word_delay_sec`` before each word.
    """

    def __init__(self, word_delay_sec: float = DEFAULT_WORD_DELAY_SEC) -> None:
        self._word_delay_sec = word_delay_sec

    def build_body(self, system_prompt: str, history: list[ChatTurn]) -> dict[str, Any]:
        last = history[-1].content if history else OPENING_INSTRUCTION
        return {
            "contents": user_contents(f"{system_prompt}\n\n{last}"),
            "generationConfig": {
                "temperature": TEMPERATURE,
                "maxOutputTokens": MAX_TOKENS,
            },
        }

    def build_request(
        self,
        client: httpx.AsyncClient,
        model: ModelDescriptor,
        system_prompt: str,
        history: list[ChatTurn],
        credential: str,
    ) -> httpx.Request:
        return client.build_request(
            "POST",
            generate_content_url(model.model_id),
            params={"key": credential},
            json=self.build_body(system_prompt, history),
        )

    async def stream(
        self,
        client: httpx.AsyncClient,
        model: ModelDescriptor,
        system_prompt: str,
        history: list[ChatTurn],
        credential: str,
    ) -> AsyncIterator[str]:
        request = self.build_request(client, model, system_prompt, history, credential)
        text = await send_generate_content(client, model.name, request)
        logger.debug("Gemini reply received (%d chars), replaying word by word", len(text))
        for word in split_words(text):
            if self._word_delay_sec > 0:
                await asyncio.sleep(self._word_delay_sec)
            yield word
