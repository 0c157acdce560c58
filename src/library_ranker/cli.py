"""CLI for Library Ranker."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Annotated, TypeVar

import pydantic
import structlog
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from library_ranker import __version__
from library_ranker.core.config import MEDIA_TYPES, RankerConfig, load_config
from library_ranker.core.errors import ConfigurationError, RankerError
from library_ranker.services import RankingService
from library_ranker.services.reporting import export_leaderboard, render_leaderboard
from library_ranker.services.selection import ComparisonPair, InsufficientItems
from library_ranker.services.storage import DBStore

T = TypeVar("T")

# Configure structlog
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

app = typer.Typer(
    name="library-ranker",
    help="Library Ranker - rank your media library through pairwise comparisons",
    add_completion=False,
)
console = Console()

CategoryOption = Annotated[
    str | None,
    typer.Option("--category", "-c", help=f"Media type filter ({', '.join(MEDIA_TYPES)})"),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"library-ranker v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Annotated[
        Path | None, typer.Option("--config", help="Path to config YAML file")
    ] = None,
    user: Annotated[str | None, typer.Option("--user", "-u", help="User scope")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-V", help="Verbose output")] = False,
    version: Annotated[
        bool | None,
        typer.Option("--version", "-v", callback=version_callback, is_eager=True),
    ] = None,
) -> None:
    """Library Ranker CLI."""
    log_level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )
    ctx.obj = {"config_path": config_path, "user": user}


def _load(ctx: typer.Context) -> tuple[RankerConfig, str]:
    try:
        config = load_config(ctx.obj["config_path"])
    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from e
    except ConfigurationError as e:
        console.print(f"[red]{escape(str(e))}")
        raise typer.Exit(1) from e
    except pydantic.ValidationError as e:
        console.print(f"[red]Invalid configuration:[/red] {escape(str(e))}")
        raise typer.Exit(1) from e
    return config, ctx.obj["user"] or config.default_user


def _run_service(
    config: RankerConfig,
    fn: Callable[[RankingService], Awaitable[T]],
) -> T:
    """Run one async operation against a fresh store and report ranker errors."""

    async def _run() -> T:
        store = DBStore(config.resolve_database_url())
        try:
            return await fn(RankingService(store, config))
        finally:
            await store.close()

    try:
        return asyncio.run(_run())
    except RankerError as e:
        console.print(f"[red]{escape(str(e))}")
        raise typer.Exit(1) from e


def _print_insufficient(result: InsufficientItems) -> None:
    console.print(
        f"[yellow]Not enough items to compare[/yellow] "
        f"({result.available} eligible, {result.required} needed). "
        "Add more media to your library."
    )


def _print_pair(pair: ComparisonPair) -> None:
    table = Table(title="Which do you prefer?")
    table.add_column("#")
    table.add_column("Id")
    table.add_column("Title")
    table.add_column("Type")
    table.add_column("Rating", justify="right")
    table.add_column("Matches", justify="right")
    for index, candidate in enumerate((pair.item_a, pair.item_b), 1):
        item = candidate.item
        table.add_row(
            str(index),
            item.id,
            item.title,
            item.media_type,
            f"{item.rating:.1f}",
            str(item.match_count),
        )
    console.print(table)


@app.command()
def init(ctx: typer.Context) -> None:
    """Create the rating system state and default any uninitialized items."""
    config, user = _load(ctx)
    result = _run_service(config, lambda s: s.initialize_system(user))
    if result.created:
        console.print("[green]Rating system initialized.[/green]")
    else:
        console.print("Rating system already exists, skipped creation.")
    console.print(f"  Items initialized: {result.items_initialized}")


@app.command("add-item")
def add_item(
    ctx: typer.Context,
    media_id: Annotated[str, typer.Argument(help="External media reference")],
    media_type: Annotated[str, typer.Option("--type", "-t", help="Media type")],
    title: Annotated[str, typer.Option("--title", help="Display title")] = "",
    item_id: Annotated[str | None, typer.Option("--id", help="Custom item id")] = None,
) -> None:
    """Add an item to the library."""
    config, user = _load(ctx)
    item = _run_service(
        config, lambda s: s.add_item(user, media_id, media_type, title=title, item_id=item_id)
    )
    console.print(f"[green]Added[/green] {item.title or item.media_id} ({item.id})")


@app.command("next")
def next_pair(ctx: typer.Context, category: CategoryOption = None) -> None:
    """Show the next pair to compare."""
    config, user = _load(ctx)
    result = _run_service(config, lambda s: s.select_next_pair(user, category))
    if isinstance(result, InsufficientItems):
        _print_insufficient(result)
        return
    _print_pair(result)


@app.command()
def compare(
    ctx: typer.Context,
    winner_id: Annotated[str, typer.Argument(help="Preferred item id")],
    loser_id: Annotated[str, typer.Argument(help="Other item id")],
    draw: Annotated[bool, typer.Option("--draw", help="No preference")] = False,
) -> None:
    """Record a comparison result."""
    config, user = _load(ctx)
    outcome = _run_service(
        config, lambda s: s.record_comparison(user, winner_id, loser_id, is_draw=draw)
    )
    for change in (outcome.winner, outcome.loser):
        console.print(
            f"  {change.item_id}: {change.old_rating:.1f} -> {change.new_rating:.1f} "
            f"({change.rating_change:+.1f})"
        )


@app.command()
def play(
    ctx: typer.Context,
    category: CategoryOption = None,
    rounds: Annotated[int, typer.Option("--rounds", "-n", help="Comparisons to run")] = 10,
) -> None:
    """Answer comparisons interactively (1, 2, d for draw, q to quit)."""
    config, user = _load(ctx)

    async def _play(service: RankingService) -> int:
        completed = 0
        for _ in range(rounds):
            result = await service.select_next_pair(user, category)
            if isinstance(result, InsufficientItems):
                _print_insufficient(result)
                break
            _print_pair(result)
            answer = typer.prompt("Preference [1/2/d/q]").strip().lower()
            if answer == "q":
                break
            first, second = result.ids
            if answer == "2":
                first, second = second, first
            elif answer not in ("1", "d"):
                console.print("[yellow]Skipped.[/yellow]")
                continue
            outcome = await service.record_comparison(user, first, second, is_draw=answer == "d")
            console.print(
                f"  {outcome.winner.item_id} {outcome.winner.rating_change:+.1f}, "
                f"{outcome.loser.item_id} {outcome.loser.rating_change:+.1f}"
            )
            completed += 1
        return completed

    completed = _run_service(config, _play)
    console.print(f"[green]{completed} comparison(s) recorded.[/green]")


@app.command()
def rankings(
    ctx: typer.Context,
    category: CategoryOption = None,
    limit: Annotated[int, typer.Option("--limit", help="Rows to show")] = 20,
    min_matches: Annotated[int, typer.Option("--min-matches", help="Minimum comparisons")] = 0,
    export: Annotated[
        Path | None, typer.Option("--export", help="Write standings to .csv or .json")
    ] = None,
) -> None:
    """Show the current standings."""
    config, user = _load(ctx)
    ranked = _run_service(
        config,
        lambda s: s.get_ranked_items(user, category, limit=limit, min_matches=min_matches),
    )
    if not ranked:
        console.print(
            "No ranked items yet. Complete more comparisons "
            f"(items need at least {min_matches} comparisons)."
        )
        return
    console.print(render_leaderboard(ranked))
    if export is not None:
        try:
            path = export_leaderboard(ranked, export)
        except ValueError as e:
            console.print(f"[red]Error:[/red] {escape(str(e))}")
            raise typer.Exit(1) from e
        console.print(f"Exported to {path}")


@app.command()
def reset(
    ctx: typer.Context,
    yes: Annotated[bool, typer.Option("--yes", help="Skip the confirmation prompt")] = False,
) -> None:
    """Reset all ratings and history for the user. Irreversible."""
    config, user = _load(ctx)
    if not yes and not typer.confirm(f"Reset every rating for '{user}'?"):
        console.print("Aborted.")
        raise typer.Exit(1)
    result = _run_service(config, lambda s: s.reset_system(user, confirm=True))
    console.print(f"[green]Reset {result.items_reset} item(s).[/green]")


@app.command()
def decay(ctx: typer.Context) -> None:
    """Grow rating deviation of items that have not been compared recently."""
    config, user = _load(ctx)
    result = _run_service(config, lambda s: s.apply_decay(user))
    console.print(f"Decayed {result.items_decayed} item(s).")


@app.command()
def tune(
    ctx: typer.Context,
    exploration_weight: Annotated[float | None, typer.Option(help="UCB exploration weight")] = None,
    provisional_threshold: Annotated[
        int | None, typer.Option(help="Matches before an item leaves provisional")
    ] = None,
    decay_rate: Annotated[float | None, typer.Option(help="Daily RD growth when idle")] = None,
    tau: Annotated[float | None, typer.Option(help="Volatility constraint")] = None,
) -> None:
    """Change system parameters."""
    config, user = _load(ctx)
    changes = {
        name: value
        for name, value in {
            "exploration_weight": exploration_weight,
            "provisional_threshold": provisional_threshold,
            "decay_rate": decay_rate,
            "tau": tau,
        }.items()
        if value is not None
    }
    if not changes:
        console.print("Nothing to change.")
        return
    state = _run_service(config, lambda s: s.update_parameters(user, **changes))
    console.print(
        f"exploration_weight={state.exploration_weight} "
        f"provisional_threshold={state.provisional_threshold} "
        f"decay_rate={state.decay_rate} tau={state.tau}"
    )


@app.command()
def validate(
    config_path: Annotated[Path, typer.Argument(help="Path to config YAML file")],
) -> None:
    """Validate a configuration file without running."""
    try:
        config = load_config(config_path)
        console.print("[green]Configuration is valid![/green]")
        console.print(f"  Database: {config.database_url}")
        console.print(f"  Seed: {config.seed}")
        console.print(f"  Shared state: {config.shared_state}")
        console.print(f"  Base K-factor: {config.rating.base_k_factor}")
        console.print(f"  History size: {config.selection.history_size}")
        console.print(f"  Provisional threshold: {config.system.provisional_threshold}")

    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from e
    except ConfigurationError as e:
        console.print(f"[red]{escape(str(e))}")
        raise typer.Exit(1) from e
    except pydantic.ValidationError as e:
        console.print(f"[red]Validation error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from e


@app.command()
def info() -> None:
    """Show tool information and example commands."""
    console.print("[bold]Library Ranker[/bold]")
    console.print(f"Version: {__version__}\n")

    console.print("[bold]Example Commands:[/bold]")
    console.print("  # Create the rating system")
    console.print("  library-ranker init\n")

    console.print("  # Add items")
    console.print("  library-ranker add-item tmdb:603 --type movie --title 'The Matrix'\n")

    console.print("  # Compare interactively")
    console.print("  library-ranker play --category movie --rounds 20\n")

    console.print("  # Show standings")
    console.print("  library-ranker rankings --min-matches 3 --export standings.csv\n")

    console.print("  # Use a custom config")
    console.print("  library-ranker --config ranker.yaml rankings")


if __name__ == "__main__":
    app()
