"""Streaming response engine: one fragment-stream contract over every provider."""

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import aclosing

import httpx

from ai_debate.models import ChatTurn, ModelDescriptor, ProviderKind
from ai_debate.providers.anthropic import ClaudeAdapter
from ai_debate.providers.base import ProviderAdapter, ProviderError, TransportError, redact
from ai_debate.providers.gemini import DEFAULT_WORD_DELAY_SEC, GeminiAdapter
from ai_debate.providers.openai_provider import OpenAICompatibleAdapter

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SEC = 60.0


def default_adapters(word_delay_sec: float = DEFAULT_WORD_DELAY_SEC) -> dict[ProviderKind, ProviderAdapter]:
    return {
        ProviderKind.OPENAI_COMPATIBLE: OpenAICompatibleAdapter(),
        ProviderKind.CLAUDE: ClaudeAdapter(),
        ProviderKind.GEMINI: GeminiAdapter(word_delay_sec),
    }


class StreamingResponseEngine:
    """Dispatch a chat call to the adapter for ``model.kind`` and stream text.

    ``generate`` yields fragments and then either returns (completion) or
    raises exactly one ``ProviderError`` (failure). Nothing is yielded after
    either. When ``cancel_event`` is set, the stream stops before the next
    fragment and returns normally.
    """

    def __init__(
        self,
        timeout_sec: float = DEFAULT_TIMEOUT_SEC,
        word_delay_sec: float = DEFAULT_WORD_DELAY_SEC,
        transport: httpx.AsyncBaseTransport | None = None,
        adapters: dict[ProviderKind, ProviderAdapter] | None = None,
    ) -> None:
        self._timeout_sec = timeout_sec
        self._transport = transport
        self._adapters = adapters if adapters is not None else default_adapters(word_delay_sec)

    @property
    def timeout_sec(self) -> float:
        return self._timeout_sec

    def adapter_for(self, kind: ProviderKind) -> ProviderAdapter:
        try:
            return self._adapters[kind]
        except KeyError:
            raise ValueError(f"No adapter registered for provider kind '{kind}'") from None

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout_sec, transport=self._transport)

    async def generate(
        self,
        model: ModelDescriptor,
        system_prompt: str,
        history: list[ChatTurn],
        credential: str,
        cancel_event: asyncio.Event | None = None,
    ) -> AsyncIterator[str]:
        adapter = self.adapter_for(model.kind)
        start = time.monotonic()
        fragments = 0
        chars = 0

        try:
            async with self.client() as client:
                stream = adapter.stream(client, model, system_prompt, history, credential)
                async with aclosing(stream):
                    async for fragment in stream:
                        if cancel_event is not None and cancel_event.is_set():
                            logger.info("%s stream cancelled after %d fragments", model.name, fragments)
                            return
                        fragments += 1
                        chars += len(fragment)
                        yield fragment
        except ProviderError:
            raise
        except httpx.TransportError as exc:
            raise TransportError(model.name, f"Transport failure: {redact(str(exc))}") from exc
        except Exception as exc:
            raise ProviderError(model.name, f"Unexpected error: {redact(str(exc))}") from exc

        logger.info(
            "%s stream complete: %d fragments, %d chars, %.2fs",
            model.name,
            fragments,
            chars,
            time.monotonic() - start,
        )
