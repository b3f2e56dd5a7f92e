"""Shared pytest fixtures."""

import asyncio
import json
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import httpx
import pytest

from ai_debate.models import ChatTurn, ModelDescriptor, ProviderKind, ResearchBriefing
from ai_debate.research import ResearchFailed
from config.config_loader import (
    AppConfig,
    Credentials,
    DefaultsConfig,
    InboxConfig,
    PromptsConfig,
    ResearchConfig,
)


@pytest.fixture
def openai_model() -> ModelDescriptor:
    return ModelDescriptor(
        name="GPT-4o",
        kind=ProviderKind.OPENAI_COMPATIBLE,
        model_id="gpt-4o",
        vendor="openai",
        base_url="https://api.openai.com",
    )


@pytest.fixture
def claude_model() -> ModelDescriptor:
    return ModelDescriptor(
        name="Claude 3.7 Sonnet",
        kind=ProviderKind.CLAUDE,
        model_id="claude-3-7-sonnet-latest",
        vendor="claude",
    )


@pytest.fixture
def gemini_model() -> ModelDescriptor:
    return ModelDescriptor(
        name="Gemini-2.0-Flash",
        kind=ProviderKind.GEMINI,
        model_id="gemini-2.0-flash",
        vendor="gemini",
    )


@pytest.fixture
def sample_prompts_config() -> PromptsConfig:
    return PromptsConfig(
        affirmative="FOR {topic}. Research: {research}. Language: {language}.",
        opposition="AGAINST {topic}. Research: {research}. Language: {language}.",
    )


@pytest.fixture
def sample_credentials() -> Credentials:
    return Credentials({"openai": "sk-test-openai", "claude": "sk-ant-test", "gemini": "AIza-test"})


@pytest.fixture
def sample_briefing() -> ResearchBriefing:
    return ResearchBriefing(
        affirmative_arguments="- Cheaper\n- Faster",
        opposition_arguments="- Riskier\n- Untested",
    )


@pytest.fixture
def sample_app_config(
    tmp_path: Path,
    openai_model: ModelDescriptor,
    claude_model: ModelDescriptor,
    gemini_model: ModelDescriptor,
    sample_prompts_config: PromptsConfig,
    sample_credentials: Credentials,
) -> AppConfig:
    return AppConfig(
        defaults=DefaultsConfig(
            rounds=2,
            max_rounds=5,
            output_dir=tmp_path / "output",
            affirmative="gpt-4o",
            opposition="claude-sonnet",
        ),
        models={
            "gpt-4o": openai_model,
            "claude-sonnet": claude_model,
            "gemini-flash": gemini_model,
        },
        prompts=sample_prompts_config,
        research=ResearchConfig(model="gemini-2.0-flash", prompt="Research {topic} in {language}"),
        inbox=InboxConfig(dir=tmp_path / "inbox", archive_dir=tmp_path / "inbox" / "archive"),
        credentials=sample_credentials,
    )


@dataclass
class ScriptedTurn:
    """One scripted engine reply: fragments, then an optional failure."""

    fragments: list[str]
    error: Exception | None = None
    after_fragment: Callable[[int], None] | None = None


@dataclass
class EngineCall:
    model: ModelDescriptor
    system_prompt: str
    history: list[ChatTurn]
    credential: str


@dataclass
class ScriptedEngine:
    """Test double for StreamingResponseEngine that replays scripted turns."""

    turns: list[ScriptedTurn] = field(default_factory=list)
    calls: list[EngineCall] = field(default_factory=list)

    async def generate(self, model, system_prompt, history, credential, cancel_event=None):
        self.calls.append(EngineCall(model, system_prompt, list(history), credential))
        turn = self.turns.pop(0) if self.turns else ScriptedTurn([f"{model.name} ", "argues."])
        for i, fragment in enumerate(turn.fragments):
            if cancel_event is not None and cancel_event.is_set():
                return
            await asyncio.sleep(0)
            yield fragment
            if turn.after_fragment is not None:
                turn.after_fragment(i)
        if turn.error is not None:
            raise turn.error


@dataclass
class FakeResearcher:
    briefing: ResearchBriefing | None = None
    error: Exception | None = None
    calls: list[tuple[str, str | None, str | None]] = field(default_factory=list)

    async def research(self, topic, credential, language=None):
        self.calls.append((topic, credential, language))
        if self.error is not None:
            raise self.error
        if self.briefing is None:
            raise ResearchFailed("no briefing scripted")
        return self.briefing


@pytest.fixture
def scripted_engine() -> ScriptedEngine:
    return ScriptedEngine()


@pytest.fixture
def fake_researcher(sample_briefing: ResearchBriefing) -> FakeResearcher:
    return FakeResearcher(briefing=sample_briefing)


def sse_body(*events: object) -> bytes:
    """Encode events as SSE ``data:`` lines; strings are sent verbatim."""
    lines = []
    for event in events:
        payload = event if isinstance(event, str) else json.dumps(event)
        lines.append(f"data: {payload}\n\n")
    return "".join(lines).encode("utf-8")


def gemini_reply(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}], "role": "model"}}]}


class RecordingHandler:
    """MockTransport handler that records requests and returns fixed responses."""

    def __init__(self, *responses: httpx.Response | Exception) -> None:
        self._responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    @property
    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


class BrokenStream(httpx.AsyncByteStream):
    """Response body that yields some chunks and then drops the connection."""

    def __init__(self, *chunks: bytes) -> None:
        self._chunks = chunks

    async def __aiter__(self):
        for chunk in self._chunks:
            yield chunk
        raise httpx.ReadError("connection reset by peer")
