"""Markdown export of a debate transcript and live rich console rendering."""

import logging
import re
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.rule import Rule
from rich.table import Table

from ai_debate.models import ModelDescriptor, TranscriptEntry

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)


def _slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len]


def export_markdown(
    topic: str,
    entries: Iterable[TranscriptEntry],
    generated_at: datetime | None = None,
) -> str:
    """Render a transcript as a Markdown document, entries in order."""
    generated_at = generated_at or datetime.now()
    parts = [
        f"# Debate on: {topic}\n",
        f"> Generated on: {generated_at.strftime('%b %d, %Y at %H:%M')}\n\n",
        "---\n\n",
    ]
    for entry in entries:
        if entry.speaker is not None:
            parts.append(f"**{entry.speaker}:**\n\n{entry.text}\n\n---\n\n")
        else:
            parts.append(f"*{entry.text}*\n\n---\n\n")
    return "".join(parts)


def save_to_file(
    topic: str,
    entries: Iterable[TranscriptEntry],
    output_dir: Path,
    slug_override: str | None = None,
) -> Path:
    """Write the Markdown export to ``<output_dir>/<timestamp>_<slug>.md``."""
    output_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    slug = slug_override if slug_override is not None else _slug(topic)
    filepath = output_dir / f"{timestamp}_{slug}.md"
    filepath.write_text(export_markdown(topic, entries), encoding="utf-8")
    logger.info("Debate saved to: %s", filepath)
    return filepath


class StreamPrinter:
    """Print transcript updates as they arrive, writing only new text.

    Used as the orchestrator's ``on_update`` callback. A speaker entry gets a
    header rule when it first appears; later updates to the same entry print
    only the suffix that was not shown yet.
    """

    def __init__(self, out: Console | None = None) -> None:
        self._console = out or console
        self._shown: dict[int, str] = {}
        self._current: int | None = None

    def __call__(self, index: int, entry: TranscriptEntry) -> None:
        if index != self._current:
            self.end_line()
            self._current = index
            if entry.speaker is not None:
                self._console.print(Rule(f"[bold cyan]{escape(entry.speaker)}[/bold cyan]"))

        shown = self._shown.get(index, "")
        if entry.text.startswith(shown):
            new_text = entry.text[len(shown):]
            style = "dim italic" if entry.is_system else None
        else:
            # replaced rather than extended, e.g. by an error message
            self._console.print()
            new_text = entry.text
            style = "red"
        if new_text:
            self._console.print(new_text, style=style, markup=False, highlight=False, end="", soft_wrap=True)
        self._shown[index] = entry.text

    def end_line(self) -> None:
        if self._current is not None:
            self._console.print()


def print_model_table(models: dict[str, ModelDescriptor], available_vendors: set[str]) -> None:
    """Print the model catalog with credential availability."""
    table = Table(title="Available models")
    table.add_column("Key", style="bold")
    table.add_column("Name")
    table.add_column("Provider")
    table.add_column("Model id", style="dim")
    table.add_column("API key")
    for key, model in models.items():
        has_key = model.vendor in available_vendors
        table.add_row(
            key,
            model.name,
            model.kind.value,
            model.model_id,
            "[green]set[/green]" if has_key else f"[red]missing ({model.vendor})[/red]",
        )
    console.print(table)
