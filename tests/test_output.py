"""Tests for ai_debate/output.py."""

import io
from datetime import datetime
from pathlib import Path

import pytest
from rich.console import Console

from ai_debate.models import Transcript, TranscriptEntry
from ai_debate.output import StreamPrinter, _slug, export_markdown, save_to_file

_WHEN = datetime(2025, 3, 7, 14, 5)


def _entry(speaker, text, is_system=False) -> TranscriptEntry:
    return TranscriptEntry(speaker, text, _WHEN, is_system)


def test_slug_basic():
    assert _slug("Should we use YAML or JSON?") == "should-we-use-yaml-or-json"


def test_slug_max_len():
    assert len(_slug("a" * 100)) <= 40


def test_slug_special_chars():
    result = _slug("API vs. SDK (2024)")
    assert "." not in result
    assert "(" not in result
    assert ")" not in result


def test_export_markdown_empty_transcript():
    assert export_markdown("Cats", [], generated_at=_WHEN) == (
        "# Debate on: Cats\n"
        "> Generated on: Mar 07, 2025 at 14:05\n\n"
        "---\n\n"
    )


def test_export_markdown_speaker_and_system_entries():
    entries = [
        _entry(None, "Research complete. The debate will now begin.", is_system=True),
        _entry("Affirmative (GPT-4o)", "Cats are independent."),
        _entry("Opposition (Claude)", "API key not configured for Claude", is_system=True),
    ]
    markdown = export_markdown("Cats", entries, generated_at=_WHEN)
    assert markdown.endswith(
        "*Research complete. The debate will now begin.*\n\n---\n\n"
        "**Affirmative (GPT-4o):**\n\nCats are independent.\n\n---\n\n"
        "**Opposition (Claude):**\n\nAPI key not configured for Claude\n\n---\n\n"
    )


def test_export_markdown_keeps_entry_order():
    entries = [_entry("A", "one"), _entry("B", "two"), _entry(None, "Debate finished.", True)]
    markdown = export_markdown("T", entries, generated_at=_WHEN)
    assert markdown.index("one") < markdown.index("two") < markdown.index("Debate finished.")


def test_export_markdown_accepts_transcript():
    transcript = Transcript()
    transcript.append(None, "status", is_system=True)
    transcript.append("Affirmative (X)", "text")
    markdown = export_markdown("T", transcript, generated_at=_WHEN)
    assert "*status*" in markdown
    assert "**Affirmative (X):**" in markdown


@pytest.fixture
def sample_entries() -> list[TranscriptEntry]:
    return [_entry("Affirmative (GPT-4o)", "Yes."), _entry(None, "Debate finished.", True)]


def test_save_to_file_creates_file(tmp_path: Path, sample_entries):
    saved = save_to_file("Is AI useful?", sample_entries, tmp_path / "output")
    assert saved.exists()
    assert saved.suffix == ".md"
    assert saved.name.endswith("_is-ai-useful.md")


def test_save_to_file_creates_output_dir(tmp_path: Path, sample_entries):
    output_dir = tmp_path / "nested" / "output"
    assert not output_dir.exists()
    save_to_file("Topic", sample_entries, output_dir)
    assert output_dir.exists()


def test_save_to_file_content(tmp_path: Path, sample_entries):
    saved = save_to_file("Is AI useful?", sample_entries, tmp_path)
    content = saved.read_text(encoding="utf-8")
    assert content.startswith("# Debate on: Is AI useful?\n")
    assert "**Affirmative (GPT-4o):**\n\nYes." in content


def test_save_to_file_slug_override(tmp_path: Path, sample_entries):
    saved = save_to_file("Topic", sample_entries, tmp_path, slug_override="custom")
    assert saved.name.endswith("_custom.md")


def _printer() -> tuple[StreamPrinter, io.StringIO]:
    buffer = io.StringIO()
    out = Console(file=buffer, width=60, color_system=None, force_terminal=False)
    return StreamPrinter(out), buffer


def test_stream_printer_prints_only_new_text():
    printer, buffer = _printer()
    printer(0, _entry("Affirmative (GPT-4o)", ""))
    printer(0, _entry("Affirmative (GPT-4o)", "Hello"))
    printer(0, _entry("Affirmative (GPT-4o)", "Hello world"))
    printer.end_line()

    output = buffer.getvalue()
    assert "Affirmative (GPT-4o)" in output
    assert output.count("Hello") == 1
    assert "Hello world" in output


def test_stream_printer_reprints_replaced_text():
    printer, buffer = _printer()
    printer(0, _entry("Opposition (Claude)", "partial"))
    printer(0, _entry("Opposition (Claude)", "Error: [Claude] HTTP 500"))
    assert "Error: [Claude] HTTP 500" in buffer.getvalue()


def test_stream_printer_system_entry_has_no_header():
    printer, buffer = _printer()
    printer(3, _entry(None, "Debate finished.", True))
    output = buffer.getvalue()
    assert "Debate finished." in output
    assert "─" not in output
