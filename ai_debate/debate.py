"""Debate orchestration: research phase, alternating streamed turns, transcript."""

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Protocol, TypeVar

from ai_debate.models import (
    ChatTurn,
    DebateSession,
    DebateState,
    ModelDescriptor,
    ResearchBriefing,
    Side,
    TranscriptEntry,
)
from ai_debate.providers.base import ProviderError, redact
from ai_debate.research import ResearchFailed
from config.config_loader import Credentials, PromptsConfig

logger = logging.getLogger(__name__)

RESEARCH_COMPLETE = "Research complete. The debate will now begin."
DEBATE_FINISHED = "Debate finished."
DEBATE_CANCELLED = "Debate cancelled."

T = TypeVar("T")
TurnOrder = tuple[int, Side]
UpdateCallback = Callable[[int, TranscriptEntry], None]


class ResponseEngine(Protocol):
    def generate(
        self,
        model: ModelDescriptor,
        system_prompt: str,
        history: list[ChatTurn],
        credential: str,
        cancel_event: asyncio.Event | None = None,
    ) -> AsyncIterator[str]: ...


class Researcher(Protocol):
    async def research(self, topic: str, credential: str | None, language: str | None = None) -> ResearchBriefing: ...


def build_conversation_history(
    affirmative_log: list[ChatTurn],
    opposition_log: list[ChatTurn],
    side: Side,
) -> list[ChatTurn]:
    """Rebuild one side's view of the debate as a user/assistant conversation.

    For every index k, the opponent's k-th turn comes first as ``user`` and the
    side's own k-th turn follows as ``assistant``; missing turns are skipped.
    """
    own, other = (
        (affirmative_log, opposition_log)
        if side is Side.AFFIRMATIVE
        else (opposition_log, affirmative_log)
    )
    history: list[ChatTurn] = []
    for k in range(max(len(own), len(other))):
        if k < len(other):
            history.append(ChatTurn("user", other[k].content))
        if k < len(own):
            history.append(ChatTurn("assistant", own[k].content))
    return history


def turn_order(rounds: int) -> list[TurnOrder]:
    """Affirmative then opposition, for each round 1..rounds."""
    return [(r, side) for r in range(1, rounds + 1) for side in (Side.AFFIRMATIVE, Side.OPPOSITION)]


def briefing_entries(briefing: ResearchBriefing) -> tuple[str, str]:
    return (
        f"### Affirmative Research Briefing\n\n---\n{briefing.affirmative_arguments}",
        f"### Opposition Research Briefing\n\n---\n{briefing.opposition_arguments}",
    )


class DebateOrchestrator:
    """Runs one debate at a time and owns its transcript and speaker logs.

    State moves Idle -> Researching -> Debating(round, side) -> Finished.
    Per-turn failures become transcript entries; only an empty topic, a
    round count below one, or a failed research call stop the debate.
    """

    def __init__(
        self,
        engine: ResponseEngine,
        researcher: Researcher,
        credentials: Credentials,
        prompts: PromptsConfig,
        on_update: UpdateCallback | None = None,
    ) -> None:
        self._engine = engine
        self._researcher = researcher
        self._credentials = credentials
        self._prompts = prompts
        self._on_update = on_update
        self._cancel_event = asyncio.Event()
        self._task: asyncio.Task | None = None
        self.session: DebateSession | None = None

    def new_session(
        self,
        topic: str,
        rounds: int,
        affirmative: ModelDescriptor,
        opposition: ModelDescriptor,
        language: str = "English",
    ) -> DebateSession:
        """Discard any previous session and start a fresh one in Idle.

        A debate still running is cancelled first; it finishes its own
        session with "Debate cancelled." and makes no further calls.
        """
        topic = topic.strip()
        if not topic:
            raise ValueError("Debate topic must not be empty")
        if rounds < 1:
            raise ValueError(f"Number of rounds must be at least 1, got {rounds}")
        if self.session is not None and self.session.status == "running":
            self.cancel()
        self._cancel_event = asyncio.Event()
        self._task = None
        self.session = DebateSession(
            topic=topic,
            rounds=rounds,
            affirmative=affirmative,
            opposition=opposition,
            language=language,
        )
        return self.session

    def cancel(self) -> None:
        """Stop the current debate: keep partial text of the turn in flight, then finish."""
        logger.info("Debate cancellation requested")
        self._cancel_event.set()
        if self._task is not None and not self._task.done():
            self._task.cancel()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    async def run(
        self,
        topic: str,
        rounds: int,
        affirmative: ModelDescriptor,
        opposition: ModelDescriptor,
        language: str = "English",
    ) -> DebateSession:
        """Run a complete debate and return the finished session."""
        session = self.new_session(topic, rounds, affirmative, opposition, language)
        # bound to this run; a later new_session swaps in a fresh event
        cancel_event = self._cancel_event
        logger.info(
            "Starting debate: %d rounds, %s vs %s",
            rounds,
            affirmative.name,
            opposition.name,
        )

        briefing = await self._research(session, cancel_event)
        if briefing is not None and not cancel_event.is_set():
            session.state = DebateState.DEBATING
            for round_num, side in turn_order(session.rounds):
                if cancel_event.is_set():
                    break
                session.current_round = round_num
                session.current_side = side
                await self._run_turn(session, side, cancel_event)

        self._finish(session, cancel_event)
        return session

    async def _cancellable(self, coro: Awaitable[T], cancel_event: asyncio.Event) -> T | None:
        """Await ``coro`` as the in-flight task; returns None if this run was cancelled."""
        task = asyncio.ensure_future(coro)
        self._task = task
        try:
            return await task
        except asyncio.CancelledError:
            if not cancel_event.is_set():
                raise
            return None
        finally:
            if self._task is task:
                self._task = None

    async def _research(self, session: DebateSession, cancel_event: asyncio.Event) -> ResearchBriefing | None:
        session.state = DebateState.RESEARCHING
        logger.info("Conducting research on: %s", session.topic)
        try:
            briefing = await self._cancellable(
                self._researcher.research(
                    session.topic,
                    self._credentials.get("gemini"),
                    session.language,
                ),
                cancel_event,
            )
        except ResearchFailed as exc:
            logger.warning("Research failed: %s", exc)
            self._append(session, None, f"Research failed: {redact(str(exc))}", is_system=True)
            return None
        if briefing is None:
            logger.info("Research cancelled")
            return None

        session.briefing = briefing
        affirmative_text, opposition_text = briefing_entries(briefing)
        self._append(session, None, affirmative_text, is_system=True)
        self._append(session, None, opposition_text, is_system=True)
        self._append(session, None, RESEARCH_COMPLETE, is_system=True)
        return briefing

    def system_prompt(self, session: DebateSession, side: Side) -> str:
        template = self._prompts.affirmative if side is Side.AFFIRMATIVE else self._prompts.opposition
        if session.briefing is None:
            raise RuntimeError("System prompts need a research briefing")
        return template.format(
            topic=session.topic,
            research=session.briefing.for_side(side),
            language=session.language,
        )

    async def _run_turn(self, session: DebateSession, side: Side, cancel_event: asyncio.Event) -> None:
        model = session.model_for(side)
        speaker = session.speaker_label(side)
        credential = self._credentials.for_model(model)

        if not credential:
            logger.warning("No API key for %s, skipping %s turn", model.name, side.value)
            self._append(session, speaker, f"API key not configured for {model.name}", is_system=True)
            return

        history = build_conversation_history(session.affirmative_log, session.opposition_log, side)
        prompt = self.system_prompt(session, side)

        index = session.transcript.open(speaker)
        self._notify(session, index)
        logger.info("Round %d: %s speaking (%d history turns)", session.current_round, speaker, len(history))

        try:
            response = await self._cancellable(
                self._stream_turn(session, index, model, prompt, history, credential, cancel_event),
                cancel_event,
            )
        except ProviderError as exc:
            logger.warning("%s turn failed: %s", speaker, redact(str(exc)))
            session.transcript.update_open(f"Error: {redact(str(exc))}")
            self._notify(session, index)
            response = None
        finally:
            session.transcript.close()

        if cancel_event.is_set():
            logger.info("%s turn cancelled", speaker)
        elif response is not None:
            session.log_for(side).append(ChatTurn("assistant", response))

    async def _stream_turn(
        self,
        session: DebateSession,
        index: int,
        model: ModelDescriptor,
        prompt: str,
        history: list[ChatTurn],
        credential: str,
        cancel_event: asyncio.Event,
    ) -> str:
        accumulated = ""
        async for fragment in self._engine.generate(
            model, prompt, history, credential, cancel_event=cancel_event
        ):
            accumulated += fragment
            session.transcript.update_open(accumulated)
            self._notify(session, index)
        return accumulated

    def _finish(self, session: DebateSession, cancel_event: asyncio.Event) -> None:
        if cancel_event.is_set():
            session.cancelled = True
            self._append(session, None, DEBATE_CANCELLED, is_system=True)
        session.state = DebateState.FINISHED
        session.current_side = None
        self._append(session, None, DEBATE_FINISHED, is_system=True)
        logger.info(
            "Debate finished: %d affirmative and %d opposition turns recorded",
            len(session.affirmative_log),
            len(session.opposition_log),
        )

    def _append(self, session: DebateSession, speaker: str | None, text: str, *, is_system: bool) -> int:
        index = session.transcript.append(speaker, text, is_system=is_system)
        self._notify(session, index)
        return index

    def _notify(self, session: DebateSession, index: int) -> None:
        if self._on_update is not None:
            self._on_update(index, session.transcript[index])
