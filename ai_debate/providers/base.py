"""Abstract base and error taxonomy for provider adapters."""

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

import httpx

from ai_debate.models import ChatTurn, ModelDescriptor

logger = logging.getLogger(__name__)

MAX_TOKENS = 1500
SSE_DATA_PREFIX = "data: "
OPENING_INSTRUCTION = "Please provide your opening statement."


class ProviderError(Exception):
    """Raised when a provider call fails."""

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"[{provider_name}] {message}")


class TransportError(ProviderError):
    """Network, DNS or timeout failure before or during a response."""


class BadServerResponse(ProviderError):
    """The server answered with a non-200 status."""

    def __init__(self, provider_name: str, status_code: int, detail: str = "") -> None:
        self.status_code = status_code
        message = f"HTTP {status_code}"
        if detail:
            message += f": {detail}"
        super().__init__(provider_name, message)


class UnparsableResponse(ProviderError):
    """A single-shot response body had no recognizable structure."""


def redact(text: str) -> str:
    """Strip API keys from text bound for logs or the transcript."""
    text = re.sub(r"(sk-[A-Za-z0-9_-]{4})[A-Za-z0-9_-]+", r"\1...", text)
    text = re.sub(r"(AIza[A-Za-z0-9_-]{4})[A-Za-z0-9_-]+", r"\1...", text)
    text = re.sub(r"(gsk_[A-Za-z0-9]{4})[A-Za-z0-9]+", r"\1...", text)
    text = re.sub(r"([?&]key=)[^&\s'\"]+", r"\1[REDACTED]", text)
    text = re.sub(r"(Bearer\s+)[A-Za-z0-9_./+-]+", r"\1[REDACTED]", text)
    return text


def sse_payload(line: str) -> str | None:
    """Return the payload of an SSE ``data:`` line, or None for any other line."""
    if not line.startswith(SSE_DATA_PREFIX):
        return None
    return line[len(SSE_DATA_PREFIX):]


async def raise_for_status(response: httpx.Response, provider_name: str) -> None:
    """Raise BadServerResponse for anything but 200, reading a short error body."""
    if response.status_code == 200:
        return
    try:
        body = (await response.aread()).decode("utf-8", errors="replace")
    except httpx.HTTPError:
        body = ""
    raise BadServerResponse(provider_name, response.status_code, redact(body[:200].strip()))


class ProviderAdapter(ABC):
    """Translate a chat request into one vendor HTTP exchange.

    Adapters are stateless: every call to ``stream`` issues a fresh request
    and yields text fragments until the vendor's response ends.
    """

    @abstractmethod
    def build_request(
        self,
        client: httpx.AsyncClient,
        model: ModelDescriptor,
        system_prompt: str,
        history: list[ChatTurn],
        credential: str,
    ) -> httpx.Request:
        """Return the vendor HTTP request for this chat call."""
        ...

    @abstractmethod
    def stream(
        self,
        client: httpx.AsyncClient,
        model: ModelDescriptor,
        system_prompt: str,
        history: list[ChatTurn],
        credential: str,
    ) -> AsyncIterator[str]:
        """Yield text fragments for the given conversation.

        The sequence is finite and not restartable; retrying means calling
        ``stream`` again.

        Raises:
            TransportError: On network failure.
            BadServerResponse: On a non-200 HTTP status.
            UnparsableResponse: When a single-shot body cannot be read.
        """
        ...


class SSEAdapter(ProviderAdapter):
    """Shared request loop for vendors that stream Server-Sent-Events.

    Subclasses decide which ``data:`` payloads carry text and which one, if
    any, terminates the stream. A payload that fails to parse is skipped.
    """

    def is_terminator(self, payload: str) -> bool:
        return False

    @abstractmethod
    def parse_payload(self, payload: str) -> str | None:
        """Return the text carried by one SSE payload, or None."""
        ...

    async def stream(
        self,
        client: httpx.AsyncClient,
        model: ModelDescriptor,
        system_prompt: str,
        history: list[ChatTurn],
        credential: str,
    ) -> AsyncIterator[str]:
        request = self.build_request(client, model, system_prompt, history, credential)
        try:
            response = await client.send(request, stream=True)
        except httpx.TransportError as exc:
            raise TransportError(model.name, f"Request failed: {redact(str(exc))}") from exc

        try:
            await raise_for_status(response, model.name)
            async for line in response.aiter_lines():
                payload = sse_payload(line)
                if payload is None:
                    continue
                if self.is_terminator(payload):
                    return
                fragment = self.parse_payload(payload)
                if fragment:
                    yield fragment
        except httpx.TransportError as exc:
            raise TransportError(model.name, f"Stream interrupted: {redact(str(exc))}") from exc
        finally:
            await response.aclose()
