"""kivocab command line: collection management, statistics and interactive study."""

import json
import logging
import os
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Annotated

import typer

from kivocab.application.config import AppConfig, config_file_path, resolve_config
from kivocab.application.factory import get_vocabulary_service
from kivocab.application.review_session import ReviewSession, SessionComplete
from kivocab.application.scheduler import get_due_items, sort_by_priority, utcnow
from kivocab.application.session_builder import build_session
from kivocab.application.vocabulary_service import VocabularyService
from kivocab.consts import VERSION
from kivocab.domain.constants import QUALITY_LABELS
from kivocab.domain.errors import InvalidInput, KivocabError
from kivocab.domain.models import (
    DirectionSetting,
    LearnableItem,
    SessionMode,
    VocabularyEntry,
)

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="kivocab: vocabulary flashcards with SM-2 spaced repetition.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="Manage kivocab configuration.")
app.add_typer(config_app, name="config")

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _config(ctx: typer.Context, **overrides) -> AppConfig:
    obj = ctx.obj or {}
    return resolve_config({"data_file": obj.get("data_file"), **overrides})


def _service(ctx: typer.Context) -> VocabularyService:
    return get_vocabulary_service(_config(ctx))


def _fail(error: Exception) -> None:
    typer.secho(f"Error: {error}", fg="red", err=True)
    raise typer.Exit(1)


def _format_item(item: LearnableItem) -> str:
    entry = item.entry
    s = item.schedule
    reading = f" [{entry.reading}]" if entry.reading else ""
    due = s.next_review.strftime("%Y-%m-%d %H:%M") if s.next_review else "new"
    return (
        f"{item.id}  {entry.term}{reading} = {entry.translation}"
        f"  (reps={s.repetitions} ivl={s.interval}d ease={s.ease_factor:.2f} next={due})"
    )


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
    data_file: Annotated[
        Path | None, typer.Option(help="Vocabulary file. Defaults to config.")
    ] = None,
):
    """Global settings for kivocab."""
    ctx.ensure_object(dict)
    ctx.obj["data_file"] = data_file
    if not verbose:
        try:
            verbose = resolve_config().verbose
        except ValueError as e:
            _fail(e)
    if verbose >= 2:
        logging.getLogger().setLevel(logging.DEBUG)
    elif verbose == 1:
        logging.getLogger().setLevel(logging.INFO)


# ---------------------------------------------------------------------------
# Collection commands
# ---------------------------------------------------------------------------


@app.command()
def add(
    ctx: typer.Context,
    term: Annotated[str, typer.Argument(help="Word or expression to learn.")],
    translation: Annotated[str, typer.Argument(help="Meaning in your language.")],
    reading: Annotated[str, typer.Option(help="Reading / pronunciation (e.g. kana).")] = "",
    romaji: Annotated[str, typer.Option(help="Romanization.")] = "",
    example: Annotated[str | None, typer.Option(help="Example sentence.")] = None,
):
    """[bold green]Add[/bold green] a vocabulary entry."""
    entry = VocabularyEntry(
        term=term, translation=translation, reading=reading, romaji=romaji, example=example
    )
    try:
        item = _service(ctx).add(entry)
    except KivocabError as e:
        _fail(e)
    typer.secho(f"Added {item.id}", fg="green")


@app.command()
def edit(
    ctx: typer.Context,
    item_id: Annotated[str, typer.Argument(help="Item ID.")],
    term: Annotated[str | None, typer.Option(help="New term.")] = None,
    translation: Annotated[str | None, typer.Option(help="New translation.")] = None,
    reading: Annotated[str | None, typer.Option(help="New reading.")] = None,
    romaji: Annotated[str | None, typer.Option(help="New romanization.")] = None,
    example: Annotated[str | None, typer.Option(help="New example sentence.")] = None,
):
    """Edit the content of an entry. Its schedule is kept."""
    service = _service(ctx)
    try:
        current = service.get(item_id).entry
        changes = {
            "term": term,
            "translation": translation,
            "reading": reading,
            "romaji": romaji,
            "example": example,
        }
        fields = {**asdict(current), **{k: v for k, v in changes.items() if v is not None}}
        item = service.update(item_id, VocabularyEntry(**fields))
    except KivocabError as e:
        _fail(e)
    typer.echo(_format_item(item))


@app.command()
def delete(
    ctx: typer.Context,
    item_id: Annotated[str, typer.Argument(help="Item ID.")],
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Bypass confirmation.")
    ] = False,
):
    """Delete an entry and its learning progress."""
    service = _service(ctx)
    try:
        item = service.get(item_id)
        if not force and not typer.confirm(f"Delete '{item.entry.term}'?"):
            raise typer.Abort()
        service.delete(item_id)
    except KivocabError as e:
        _fail(e)
    typer.secho(f"Deleted {item_id}", fg="green")


@app.command("list")
def list_items(
    ctx: typer.Context,
    query: Annotated[str, typer.Argument(help="Search text; empty lists everything.")] = "",
):
    """List or search entries."""
    try:
        items = _service(ctx).search(query)
    except KivocabError as e:
        _fail(e)
    if not items:
        typer.secho("No entries found.", fg="yellow")
        return
    for item in items:
        typer.echo(_format_item(item))


@app.command()
def reset(
    ctx: typer.Context,
    item_id: Annotated[str, typer.Argument(help="Item ID.")],
):
    """Reset an entry's schedule to a brand-new card."""
    try:
        _service(ctx).reset(item_id)
    except KivocabError as e:
        _fail(e)
    typer.secho(f"Reset {item_id}", fg="green")


# ---------------------------------------------------------------------------
# Scheduling commands
# ---------------------------------------------------------------------------


@app.command()
def rate(
    ctx: typer.Context,
    item_id: Annotated[str, typer.Argument(help="Item ID.")],
    quality: Annotated[int, typer.Argument(help="Recall quality 0-5.")],
):
    """Record a single review outside of a study session."""
    try:
        item = _service(ctx).record_rating(item_id, quality)
    except KivocabError as e:
        _fail(e)
    typer.echo(_format_item(item))


@app.command()
def due(ctx: typer.Context):
    """Show due entries, most urgent first."""
    now = utcnow()
    try:
        items = sort_by_priority(get_due_items(_service(ctx).items, now), now)
    except KivocabError as e:
        _fail(e)
    if not items:
        typer.secho("Nothing due.", fg="green")
        return
    for item in items:
        typer.echo(_format_item(item))


@app.command()
def stats(
    ctx: typer.Context,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Show learning statistics."""
    service = _service(ctx)
    now = utcnow()
    try:
        learning = service.learning_stats(now)
        overview = service.overview(now)
    except KivocabError as e:
        _fail(e)

    if json_output:
        typer.echo(json.dumps({**asdict(learning), "learned": overview.learned}, indent=2))
        return

    typer.echo(f"Total: {learning.total}  Learned: {overview.learned}")
    typer.echo(
        f"New: {learning.new}  Learning: {learning.learning}  "
        f"Review: {learning.review}  Mastered: {learning.mastered}"
    )
    color = "yellow" if learning.due else "green"
    typer.secho(f"Due: {learning.due}  Overdue: {learning.overdue}", fg=color)


@app.command()
def study(
    ctx: typer.Context,
    mode: Annotated[SessionMode, typer.Option(help="Which entries to study.")] = SessionMode.DUE,
    size: Annotated[int | None, typer.Option(help="Entries per session.")] = None,
    direction: Annotated[
        DirectionSetting | None, typer.Option(help="Question direction.")
    ] = None,
):
    """[bold green]Study[/bold green] a session interactively."""
    try:
        config = _config(ctx, session_size=size, direction=direction)
    except ValueError as e:
        _fail(e)
    service = get_vocabulary_service(config)

    try:
        queue = build_session(
            service.items, mode, config.direction, config.session_size, utcnow()
        )
    except KivocabError as e:
        _fail(e)

    if not queue:
        typer.secho("Nothing to study.", fg="yellow")
        return

    logger.info(f"Studying {len(queue)} entries (mode={mode.value})")
    session = ReviewSession(queue, direction=config.direction, on_rated=service.upsert)
    while True:
        _run_session(session)
        if not isinstance(session.state, SessionComplete):
            return
        missed = session.state.missed_items
        if not missed or not typer.confirm(f"Repeat {len(missed)} missed entries?"):
            return
        session = session.repeat_missed()


def _run_session(session: ReviewSession) -> None:
    total = len(session.items)
    while not session.is_finished:
        index = session.state.index + 1
        typer.echo(f"\n[{index}/{total}] {session.prompt()}")
        action = typer.prompt("Enter to reveal, q to quit", default="", show_default=False)
        if action.strip().lower() == "q":
            session.cancel()
            typer.secho(f"Stopped after {len(session.results)} entries.", fg="yellow")
            return

        session.reveal()
        typer.secho(f"  -> {session.answer()}", bold=True)
        for value, (label, _) in QUALITY_LABELS.items():
            typer.echo(f"  {value}: {label}")
        _rate_current(session)

    result = session.state
    color = "green" if result.correctness >= 0.5 else "yellow"
    typer.secho(
        f"\nCorrect: {result.correct_count}/{len(result.results)}"
        f"  Best streak: {session.stats.max_streak}",
        fg=color,
    )


def _rate_current(session: ReviewSession) -> None:
    while True:
        quality = typer.prompt("Quality", type=int)
        try:
            session.rate(quality)
            return
        except InvalidInput as e:
            typer.secho(str(e), fg="red")
        except KivocabError as e:
            _fail(e)


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Display final resolved configuration."""
    config = _config(ctx)
    typer.echo(json.dumps(config.model_dump(mode="json"), indent=2))


@config_app.command("open")
def config_open():
    """Open the config file in your default editor."""
    import subprocess

    cfg_path = config_file_path()
    if not cfg_path.exists():
        cfg_path.parent.mkdir(parents=True, exist_ok=True)
        cfg_path.touch()

    if sys.platform == "darwin":
        subprocess.run(["open", str(cfg_path)])
    elif sys.platform == "win32":
        os.startfile(str(cfg_path))
    else:
        subprocess.run(["xdg-open", str(cfg_path)])


@app.command()
def version():
    """Print the kivocab version."""
    typer.echo(VERSION)
