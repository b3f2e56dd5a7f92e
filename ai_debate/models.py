"""Dataclasses for the debate pipeline: catalog, chat turns, transcript, session."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum


class ProviderKind(str, Enum):
    OPENAI_COMPATIBLE = "openai_compatible"
    CLAUDE = "claude"
    GEMINI = "gemini"


class Side(str, Enum):
    AFFIRMATIVE = "affirmative"
    OPPOSITION = "opposition"

    @property
    def opponent(self) -> "Side":
        return Side.OPPOSITION if self is Side.AFFIRMATIVE else Side.AFFIRMATIVE

    @property
    def label(self) -> str:
        return self.value.capitalize()


class DebateState(str, Enum):
    IDLE = "idle"
    RESEARCHING = "researching"
    DEBATING = "debating"
    FINISHED = "finished"


@dataclass(frozen=True)
class ModelDescriptor:
    name: str                  # display name, e.g. "GPT-4o"
    kind: ProviderKind
    model_id: str              # vendor model identifier
    vendor: str                # credential key: "openai", "claude", "gemini", "deepseek", "groq"
    base_url: str | None = None


@dataclass(frozen=True)
class ChatTurn:
    role: str                  # "system", "user" or "assistant"
    content: str

    def as_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class ResearchBriefing:
    affirmative_arguments: str
    opposition_arguments: str

    def for_side(self, side: Side) -> str:
        if side is Side.AFFIRMATIVE:
            return self.affirmative_arguments
        return self.opposition_arguments


@dataclass(frozen=True)
class TranscriptEntry:
    speaker: str | None        # None for system/status messages
    text: str
    timestamp: datetime
    is_system: bool = False


class Transcript:
    """Append-only list of entries with at most one open (streaming) entry.

    The open entry is always the last one. Its text is replaced through
    ``update_open`` until ``close`` freezes it.
    """

    def __init__(self) -> None:
        self._entries: list[TranscriptEntry] = []
        self._open_index: int | None = None

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(list(self._entries))

    def __getitem__(self, index: int) -> TranscriptEntry:
        return self._entries[index]

    @property
    def entries(self) -> list[TranscriptEntry]:
        return list(self._entries)

    @property
    def open_index(self) -> int | None:
        return self._open_index

    def append(self, speaker: str | None, text: str, *, is_system: bool = False) -> int:
        if self._open_index is not None:
            raise RuntimeError("Cannot append while an entry is still streaming")
        self._entries.append(TranscriptEntry(speaker, text, datetime.now(), is_system))
        return len(self._entries) - 1

    def open(self, speaker: str) -> int:
        index = self.append(speaker, "")
        self._open_index = index
        return index

    def update_open(self, text: str) -> TranscriptEntry:
        if self._open_index is None:
            raise RuntimeError("No entry is open")
        entry = replace(self._entries[self._open_index], text=text, timestamp=datetime.now())
        self._entries[self._open_index] = entry
        return entry

    def close(self) -> None:
        self._open_index = None


@dataclass
class DebateSession:
    topic: str
    rounds: int
    affirmative: ModelDescriptor
    opposition: ModelDescriptor
    language: str = "English"
    state: DebateState = DebateState.IDLE
    briefing: ResearchBriefing | None = None
    transcript: Transcript = field(default_factory=Transcript)
    affirmative_log: list[ChatTurn] = field(default_factory=list)
    opposition_log: list[ChatTurn] = field(default_factory=list)
    current_round: int = 0
    current_side: Side | None = None
    cancelled: bool = False

    @property
    def status(self) -> str:
        """Coarse status: "idle", "running" or "finished"."""
        if self.state is DebateState.IDLE:
            return "idle"
        if self.state is DebateState.FINISHED:
            return "finished"
        return "running"

    def model_for(self, side: Side) -> ModelDescriptor:
        return self.affirmative if side is Side.AFFIRMATIVE else self.opposition

    def log_for(self, side: Side) -> list[ChatTurn]:
        return self.affirmative_log if side is Side.AFFIRMATIVE else self.opposition_log

    def speaker_label(self, side: Side) -> str:
        return f"{side.label} ({self.model_for(side).name})"
