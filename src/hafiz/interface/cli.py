"""hafiz CLI: vocabulary import, reviews, due items and progress statistics."""

import asyncio
import json
import logging
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Annotated, Any, TypeVar

import typer

from hafiz.application.config import AppConfig, resolve_config
from hafiz.application.engine import ReviewEngine
from hafiz.application.factory import get_record_store, get_review_engine
from hafiz.domain.errors import HafizError
from hafiz.domain.models import DIFFICULTIES
from hafiz.domain.ports import RecordStore

T = TypeVar("T")

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="hafiz: spaced-repetition vocabulary reviews from the terminal.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="Manage hafiz configuration.")
app.add_typer(config_app, name="config")

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)


def _log_level(verbose: int) -> int:
    if verbose <= 0:
        return logging.WARNING
    if verbose == 1:
        return logging.INFO
    return logging.DEBUG


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _resolve(ctx: typer.Context) -> AppConfig:
    obj = ctx.obj or {}
    return resolve_config(
        {
            "db_path": obj.get("db_path"),
            "backend": obj.get("backend"),
            "verbose": obj.get("verbose"),
        }
    )


def _run(
    ctx: typer.Context,
    action: Callable[[ReviewEngine, AppConfig], Awaitable[T]],
) -> T:
    """Build the engine for this invocation, run `action`, and map domain errors to exit 1."""
    config = _resolve(ctx)
    store: RecordStore = get_record_store(config)
    engine = get_review_engine(config, store)

    try:
        return asyncio.run(action(engine, config))
    except HafizError as e:
        typer.secho(f"Error: {e}", fg="red", err=True)
        raise typer.Exit(1) from e
    finally:
        close = getattr(store, "close", None)
        if close:
            close()


def _echo_json(data: Any) -> None:
    typer.echo(json.dumps(data, indent=2, ensure_ascii=False))


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
    ] = 1,
    db: Annotated[
        Path | None, typer.Option("--db", help="Database file. Defaults to config.")
    ] = None,
    backend: Annotated[
        str | None, typer.Option(help="Storage backend: sqlite, memory.")
    ] = None,
):
    """Global settings for hafiz."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["db_path"] = db
    ctx.obj["backend"] = backend
    logging.getLogger().setLevel(_log_level(verbose))


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command("import")
def import_cmd(
    ctx: typer.Context,
    path: Annotated[Path, typer.Argument(help="YAML or JSON vocabulary file.")],
    limit: Annotated[
        int | None, typer.Option(help="Import at most this many entries.")
    ] = None,
):
    """[bold green]Import[/bold green] vocabulary items into the store."""
    from hafiz.application.vocabulary_service import import_vocabulary

    async def run(engine: ReviewEngine, config: AppConfig) -> int:
        return await import_vocabulary(engine.store, path, limit=limit)

    count = _run(ctx, run)
    typer.secho(f"Imported {count} vocabulary items.", fg="green")


@app.command()
def review(
    ctx: typer.Context,
    item_id: Annotated[int, typer.Argument(help="Vocabulary item id.")],
    quality: Annotated[
        float | None,
        typer.Option("--quality", "-q", help="Recall quality 0-5 (clamped)."),
    ] = None,
    correct: Annotated[
        bool | None,
        typer.Option("--correct/--incorrect", help="Plain right/wrong answer."),
    ] = None,
):
    """Record a review, either graded (--quality) or plain (--correct/--incorrect)."""
    if (quality is None) == (correct is None):
        typer.secho("Pass exactly one of --quality or --correct/--incorrect.", fg="yellow")
        raise typer.Exit(2)

    if quality is not None:

        async def graded(engine: ReviewEngine, config: AppConfig):
            return await engine.schedule_review(item_id, quality)

        result = _run(ctx, graded)
        typer.echo(
            f"Next review in {result.interval} day(s) "
            f"({result.next_review:%Y-%m-%d %H:%M}), ease {result.ease_factor:.2f}"
        )
        return

    async def plain(engine: ReviewEngine, config: AppConfig):
        return await engine.record_outcome(item_id, bool(correct))

    state = _run(ctx, plain)
    typer.echo(
        f"Next review {state.next_review:%Y-%m-%d %H:%M}, ease {state.ease_factor:.2f} "
        f"({state.correct_count} correct / {state.incorrect_count} incorrect)"
    )


@app.command()
def due(
    ctx: typer.Context,
    limit: Annotated[int | None, typer.Option(help="Maximum items to list.")] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """List vocabulary items that are due for review, earliest first."""

    async def run(engine: ReviewEngine, config: AppConfig):
        items = await engine.get_due_items(limit if limit is not None else config.due_limit)
        return items, await engine.count_due()

    items, total = _run(ctx, run)

    if json_output:
        _echo_json(
            [
                {"id": i.id, "word": i.word, "translation": i.translation}
                for i in items
            ]
        )
        return

    if not items:
        typer.secho("Nothing due. Come back later.", fg="green")
        return
    typer.echo(f"{total} due, showing {len(items)}:")
    for item in items:
        translit = f" ({item.transliteration})" if item.transliteration else ""
        typer.echo(f"  [{item.id}] {item.word}{translit} - {item.translation}")


@app.command()
def stats(
    ctx: typer.Context,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Show aggregate learning statistics."""

    async def run(engine: ReviewEngine, config: AppConfig):
        return await engine.get_stats()

    result = _run(ctx, run)

    if json_output:
        _echo_json(result.to_dict())
        return

    typer.echo(f"Words learned:  {result.learned_words_count}/{result.total_words}")
    typer.echo(f"Reviews today:  {result.reviews_today}")
    typer.echo(f"Reviews total:  {result.reviews_total}")
    typer.echo(f"Accuracy:       {result.accuracy_percentage}%")
    typer.echo(f"Streak:         {result.streak_days} day(s)")


@app.command()
def history(
    ctx: typer.Context,
    days: Annotated[int | None, typer.Option(help="Number of days to show.")] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Show per-day review counts, most recent first."""

    async def run(engine: ReviewEngine, config: AppConfig):
        return await engine.get_daily_history(days if days is not None else config.history_days)

    entries = _run(ctx, run)

    if json_output:
        _echo_json([e.to_dict() for e in entries])
        return

    if not entries:
        typer.secho("No reviews recorded yet.", fg="yellow")
        return
    for entry in entries:
        typer.echo(
            f"  {entry.date.isoformat()}  {entry.review_count:>4} reviews  "
            f"{entry.correct_count:>4} correct"
        )


@app.command()
def words(
    ctx: typer.Context,
    difficulty: Annotated[
        str | None, typer.Option(help="beginner, intermediate or advanced.")
    ] = None,
    tag: Annotated[str | None, typer.Option(help="Only items carrying this tag.")] = None,
    limit: Annotated[int, typer.Option(help="Maximum items to list.")] = 20,
):
    """Browse vocabulary by difficulty or tag."""
    if difficulty is not None and difficulty not in DIFFICULTIES:
        typer.secho(f"Unknown difficulty: {difficulty}", fg="red")
        raise typer.Exit(2)

    async def run(engine: ReviewEngine, config: AppConfig):
        return await engine.store.find_vocabulary(difficulty=difficulty, tag=tag, limit=limit)

    items = _run(ctx, run)
    if not items:
        typer.secho("No matching words.", fg="yellow")
        return
    for item in items:
        tags = f"  #{' #'.join(item.tags)}" if item.tags else ""
        typer.echo(f"  [{item.id}] {item.word} - {item.translation} ({item.difficulty}){tags}")


@app.command("export")
def export_cmd(
    ctx: typer.Context,
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Write to file instead of stdout.")
    ] = None,
):
    """Export review progress and statistics as JSON."""

    async def run(engine: ReviewEngine, config: AppConfig):
        return await engine.export_data()

    data = _run(ctx, run)
    if output is None:
        _echo_json(data)
        return
    output.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    typer.secho(f"Exported {len(data['progress'])} review states to {output}", fg="green")


@app.command("reset-today")
def reset_today(ctx: typer.Context):
    """Zero today's review counter."""

    async def run(engine: ReviewEngine, config: AppConfig):
        await engine.tracker.reset_daily_progress()

    _run(ctx, run)
    typer.echo("Daily review counter reset.")


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Display final resolved configuration."""
    config = _resolve(ctx)
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    _echo_json(d)
