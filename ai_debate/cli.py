"""Click CLI — loads config, picks debaters, runs the streamed debate, saves it."""

import asyncio
import logging
import signal
import sys
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler

from ai_debate.debate import DebateOrchestrator
from ai_debate.engine import StreamingResponseEngine
from ai_debate.healthcheck import run_health_checks
from ai_debate.inbox import archive_file, ensure_dirs, parse_topic_file, scan_inbox
from ai_debate.models import DebateSession, ModelDescriptor
from ai_debate.output import StreamPrinter, print_model_table, save_to_file
from ai_debate.research import ResearchCollector
from config.config_loader import AppConfig, load_config

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )
    # httpx logs every request URL at INFO, and Gemini URLs carry the API key.
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _resolve_debaters(
    config: AppConfig,
    affirmative: str | None,
    opposition: str | None,
) -> tuple[ModelDescriptor, ModelDescriptor]:
    """Returns (affirmative, opposition). CLI values override config defaults.

    Raises:
        KeyError: If a model is not in the catalog.
    """
    aff = config.resolve_model(affirmative or config.defaults.affirmative)
    opp = config.resolve_model(opposition or config.defaults.opposition)
    return aff, opp


def _validate_rounds(config: AppConfig, rounds: int) -> int:
    if rounds < 1 or rounds > config.defaults.max_rounds:
        raise click.BadParameter(
            f"must be between 1 and {config.defaults.max_rounds}", param_hint="--rounds"
        )
    return rounds


def _build_engine(config: AppConfig, no_delay: bool) -> StreamingResponseEngine:
    return StreamingResponseEngine(
        timeout_sec=config.defaults.timeout_sec,
        word_delay_sec=0.0 if no_delay else config.defaults.word_delay_sec,
    )


def _build_orchestrator(
    config: AppConfig,
    engine: StreamingResponseEngine,
    language: str,
    printer: StreamPrinter,
) -> DebateOrchestrator:
    researcher = ResearchCollector(
        model_id=config.research.model,
        prompt_template=config.research.prompt,
        language=language,
        timeout_sec=config.defaults.timeout_sec,
    )
    return DebateOrchestrator(
        engine=engine,
        researcher=researcher,
        credentials=config.credentials,
        prompts=config.prompts,
        on_update=printer,
    )


def _check_debaters(
    config: AppConfig,
    engine: StreamingResponseEngine,
    debaters: dict[str, ModelDescriptor],
) -> None:
    """Ping both debaters; exit if the user declines to continue after a failure."""
    console.print("\n[bold]Checking debaters...[/bold]")
    results = asyncio.run(run_health_checks(engine, debaters, config.credentials))

    failed: list[str] = []
    for side in sorted(results):
        ok, err = results[side]
        name = debaters[side].name
        if ok:
            console.print(f"  [green]OK  [/green] {side}: {name}")
        else:
            short_err = err.splitlines()[0][:120] if err else "unknown error"
            console.print(f"  [red]FAIL[/red] {side}: {name}: {short_err}")
            failed.append(side)

    console.print()
    if failed and not click.confirm(
        "Failed turns will show as errors in the transcript. Continue anyway?", default=True
    ):
        sys.exit(0)


async def _run_debate(
    orchestrator: DebateOrchestrator,
    topic: str,
    rounds: int,
    affirmative: ModelDescriptor,
    opposition: ModelDescriptor,
    language: str,
) -> DebateSession:
    """Run one debate; Ctrl-C cancels it and keeps the partial transcript."""
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, orchestrator.cancel)
        installed = True
    except (NotImplementedError, RuntimeError):
        # Windows event loops have no signal handlers; Ctrl-C aborts instead.
        installed = False
    try:
        return await orchestrator.run(topic, rounds, affirmative, opposition, language)
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)


def _run_single(
    config: AppConfig,
    topic: str,
    rounds: int,
    affirmative: ModelDescriptor,
    opposition: ModelDescriptor,
    language: str,
    output_dir: Path,
    no_delay: bool,
    skip_health_check: bool,
    slug_override: str | None = None,
) -> Path:
    """Run a single debate and return the saved transcript path."""
    engine = _build_engine(config, no_delay)

    console.print(f"\n[bold cyan]AI Debate[/bold cyan] — {rounds} rounds, language: {language}")
    console.print(f"Affirmative: {affirmative.name}")
    console.print(f"Opposition: {opposition.name}")
    console.print(f"Topic: [italic]{topic[:80]}{'...' if len(topic) > 80 else ''}[/italic]")

    if not skip_health_check:
        _check_debaters(config, engine, {"affirmative": affirmative, "opposition": opposition})

    printer = StreamPrinter(console)
    orchestrator = _build_orchestrator(config, engine, language, printer)
    session = asyncio.run(_run_debate(orchestrator, topic, rounds, affirmative, opposition, language))
    printer.end_line()

    saved_path = save_to_file(session.topic, session.transcript, output_dir, slug_override=slug_override)
    console.print(f"\n[dim]Saved to: {saved_path}[/dim]")
    return saved_path


def _run_inbox(
    config: AppConfig,
    inbox_dir: Path,
    rounds_cli: int | None,
    affirmative_cli: str | None,
    opposition_cli: str | None,
    language_cli: str | None,
    output_dir: Path,
    no_delay: bool,
    skip_health_check: bool,
) -> None:
    """Debate every topic file in the inbox.

    Precedence for per-file settings: CLI flag > front matter > config default.
    """
    archive_dir = config.inbox.archive_dir
    ensure_dirs(inbox_dir, archive_dir)
    files = scan_inbox(inbox_dir)

    if not files:
        click.echo("No files in inbox.")
        return

    for file_path in files:
        try:
            topic_file = parse_topic_file(file_path)
            rounds = _validate_rounds(
                config,
                rounds_cli if rounds_cli is not None
                else topic_file.rounds if topic_file.rounds is not None
                else config.defaults.rounds,
            )
            affirmative, opposition = _resolve_debaters(
                config,
                affirmative_cli or topic_file.affirmative,
                opposition_cli or topic_file.opposition,
            )
            saved = _run_single(
                config=config,
                topic=topic_file.topic,
                rounds=rounds,
                affirmative=affirmative,
                opposition=opposition,
                language=language_cli or topic_file.language or config.defaults.language,
                output_dir=output_dir,
                no_delay=no_delay,
                skip_health_check=skip_health_check,
                slug_override=file_path.stem,
            )
            archived = archive_file(file_path, archive_dir)
            click.echo(f"Processed: {file_path.name} -> {saved} (archived: {archived.name})")
        except (ValueError, KeyError, click.BadParameter) as exc:
            logger.error("Failed: %s -- %s", file_path.name, exc)
            archive_file(file_path, archive_dir, failed=True)


@click.command()
@click.argument("topic", required=False)
@click.option("--file", "topic_file", type=click.Path(exists=True), help="Read the topic from a .md file")
@click.option("--rounds", default=None, type=int, help="Number of debate rounds (default: from config)")
@click.option("--affirmative", default=None, help="Model key or name arguing FOR the topic")
@click.option("--opposition", default=None, help="Model key or name arguing AGAINST the topic")
@click.option("--language", default=None, help="Response language (default: from config)")
@click.option("--output", "output_path", default=None, help="Output directory (default: from config)")
@click.option("--no-delay", is_flag=True, help="Replay Gemini replies without the per-word delay")
@click.option("--list-models", is_flag=True, help="Show the model catalog and exit")
@click.option("--inbox", "use_inbox", is_flag=True, default=False,
              help="Debate every .md topic file in the inbox folder")
@click.option("--inbox-dir", "inbox_dir_override", default=None,
              help="Override inbox folder path (default: from config)")
@click.option("--skip-health-check", is_flag=True, default=False,
              help="Skip the API connectivity check at startup")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
def main(
    topic: str | None,
    topic_file: str | None,
    rounds: int | None,
    affirmative: str | None,
    opposition: str | None,
    language: str | None,
    output_path: str | None,
    no_delay: bool,
    list_models: bool,
    use_inbox: bool,
    inbox_dir_override: str | None,
    skip_health_check: bool,
    verbose: bool,
) -> None:
    """AI Debate -- two language models argue a topic, streamed live.

    \b
    Examples:
      ai-debate "Remote work is better than office work"
      ai-debate "Nuclear power should be expanded" --rounds 3 --affirmative gemini-flash
      ai-debate --file topic.md --language French
      ai-debate --inbox
      ai-debate --list-models
    """
    if sys.platform == "win32":
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        if hasattr(sys.stderr, "reconfigure"):
            sys.stderr.reconfigure(encoding="utf-8", errors="replace")

    load_dotenv()
    _setup_logging(verbose)

    try:
        config = load_config()
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)

    if list_models:
        print_model_table(config.models, config.credentials.vendors)
        return

    effective_output = Path(output_path) if output_path else config.defaults.output_dir

    if use_inbox:
        inbox_dir = Path(inbox_dir_override) if inbox_dir_override else config.inbox.dir
        _run_inbox(
            config=config,
            inbox_dir=inbox_dir,
            rounds_cli=rounds,
            affirmative_cli=affirmative,
            opposition_cli=opposition,
            language_cli=language,
            output_dir=effective_output,
            no_delay=no_delay,
            skip_health_check=skip_health_check,
        )
        return

    file_rounds: int | None = None
    if topic_file:
        try:
            parsed = parse_topic_file(Path(topic_file))
        except ValueError as exc:
            console.print(f"[bold red]Error:[/bold red] {exc}")
            sys.exit(1)
        topic_text = parsed.topic
        file_rounds = parsed.rounds
        affirmative = affirmative or parsed.affirmative
        opposition = opposition or parsed.opposition
        language = language or parsed.language
    elif topic and topic.strip():
        topic_text = topic.strip()
    else:
        console.print("[bold red]Error:[/bold red] Provide a TOPIC argument, --file, or --inbox.")
        sys.exit(1)

    effective_rounds = _validate_rounds(
        config,
        rounds if rounds is not None else file_rounds if file_rounds is not None else config.defaults.rounds,
    )

    try:
        aff_model, opp_model = _resolve_debaters(config, affirmative, opposition)
    except KeyError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc.args[0]}")
        sys.exit(1)

    _run_single(
        config=config,
        topic=topic_text,
        rounds=effective_rounds,
        affirmative=aff_model,
        opposition=opp_model,
        language=language or config.defaults.language,
        output_dir=effective_output,
        no_delay=no_delay,
        skip_health_check=skip_health_check,
    )


if __name__ == "__main__":
    main()
