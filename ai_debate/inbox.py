"""Topic files: front matter parsing, inbox scanning and archiving."""

import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import frontmatter

_OVERRIDE_KEYS = ("rounds", "affirmative", "opposition", "language")


@dataclass
class TopicFile:
    path: Path
    topic: str
    rounds: int | None = None
    affirmative: str | None = None
    opposition: str | None = None
    language: str | None = None


def parse_topic_file(file_path: Path) -> TopicFile:
    """Read a Markdown topic with optional YAML front matter.

    The body is the debate topic. Front matter may set ``rounds``,
    ``affirmative``, ``opposition`` and ``language``; unknown keys are ignored.

    Raises:
        ValueError: If the body is empty or ``rounds`` is not an integer.
    """
    post = frontmatter.load(str(file_path))
    topic = post.content.strip()
    if not topic:
        raise ValueError(f"{file_path.name}: topic body is empty")

    meta = {k: post.metadata[k] for k in _OVERRIDE_KEYS if k in post.metadata}
    rounds = meta.get("rounds")
    if rounds is not None:
        try:
            rounds = int(rounds)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"{file_path.name}: rounds must be an integer, got {rounds!r}") from exc

    return TopicFile(
        path=file_path,
        topic=topic,
        rounds=rounds,
        affirmative=str(meta["affirmative"]) if "affirmative" in meta else None,
        opposition=str(meta["opposition"]) if "opposition" in meta else None,
        language=str(meta["language"]) if "language" in meta else None,
    )


def ensure_dirs(inbox_dir: Path, archive_dir: Path) -> None:
    inbox_dir.mkdir(parents=True, exist_ok=True)
    archive_dir.mkdir(parents=True, exist_ok=True)


def scan_inbox(inbox_dir: Path) -> list[Path]:
    """Return the inbox's .md topic files, oldest first."""
    return sorted(inbox_dir.glob("*.md"), key=lambda p: p.stat().st_mtime)


def archive_file(file_path: Path, archive_dir: Path, *, failed: bool = False) -> Path:
    """Move a processed topic file into the archive with a timestamp prefix."""
    stamp = datetime.now().strftime("%Y-%m-%dT%H%M")
    dest = archive_dir / f"{'FAILED_' if failed else ''}{stamp}_{file_path.name}"
    shutil.move(str(file_path), str(dest))
    return dest
