"""CLI entry-point for the post archiver."""

from __future__ import annotations

import json
import logging
import signal
import sys
import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .archiver import Archiver, ArchiverStats, CycleReport
from .config import ArchiverConfig, DatabaseConfig
from .db import CommentRepository, Database, PostRepository
from .errors import CandidateListError
from .store import CommentStore, PostStore

console = Console()

_positive = click.FloatRange(min=0, min_open=True)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, console=console)],
    )
    # Suppress noisy libraries
    logging.getLogger("psycopg").setLevel(logging.WARNING)


@contextmanager
def _open_stores(db_cfg: DatabaseConfig) -> Iterator[tuple[PostStore, CommentStore]]:
    with Database(db_cfg) as db:
        yield PostRepository(db), CommentRepository(db)


def _print_stats(stats: ArchiverStats) -> None:
    table = Table(title="Archiver Stats", show_header=True, header_style="bold cyan")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Last run", stats.last_run.strftime("%Y-%m-%d %H:%M:%S %Z") if stats.last_run else "never")
    table.add_row("Archived", str(stats.archived_count))
    table.add_row("Errors", str(stats.error_count))
    table.add_row("Running", "yes" if stats.is_running else "no")
    console.print(table)


def _print_report(report: CycleReport) -> None:
    verb = "Would archive" if report.dry_run else "Archived"
    table = Table(title="Archival Cycle", show_header=True, header_style="bold cyan")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Candidates", str(report.candidates))
    table.add_row(verb, str(len(report.archived)))
    table.add_row("Errors", str(report.errors))
    console.print(table)
    if report.archived:
        console.print(f"{verb} posts: " + ", ".join(str(pid) for pid in report.archived))


def _policy_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    # Unset options fall back to ArchiverConfig.from_env()
    fn = click.option("--dry-run/--no-dry-run", default=None,
                      help="Evaluate posts without archiving them [env: ARCHIVER_DRY_RUN]")(fn)
    fn = click.option("--comment-ttl", default=None, type=_positive,
                      help="Seconds of silence after the last comment [env: ARCHIVER_COMMENT_TTL, default: 900]")(fn)
    fn = click.option("--no-comment-ttl", default=None, type=_positive,
                      help="Seconds before an uncommented post is archived [env: ARCHIVER_NO_COMMENT_TTL, default: 600]")(fn)
    return fn


@click.group()
@click.option("--db-host", envvar="DB_HOST", default="localhost", help="PostgreSQL host")
@click.option("--db-port", envvar="DB_PORT", default=5432, type=int, help="PostgreSQL port")
@click.option("--db-name", envvar="DB_NAME", default="board", help="PostgreSQL database name")
@click.option("--db-user", envvar="DB_USER", default="board", help="PostgreSQL user")
@click.option("--db-password", envvar="DB_PASSWORD", default="board", help="PostgreSQL password")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, **kwargs: object) -> None:
    """Post archiver – move stale board posts into the archive.

    Posts without comments are archived after a quiet period; posts with
    comments are archived once the latest comment has gone stale.
    """
    _setup_logging(bool(kwargs.pop("verbose")))
    ctx.ensure_object(dict)
    ctx.obj["db_cfg"] = DatabaseConfig(
        host=kwargs["db_host"],  # type: ignore[arg-type]
        port=kwargs["db_port"],  # type: ignore[arg-type]
        dbname=kwargs["db_name"],  # type: ignore[arg-type]
        user=kwargs["db_user"],  # type: ignore[arg-type]
        password=kwargs["db_password"],  # type: ignore[arg-type]
    )
    try:
        ctx.obj["archiver_cfg"] = ArchiverConfig.from_env()
    except ValueError as exc:
        raise click.UsageError(str(exc)) from exc


# ─── Commands ────────────────────────────────────────────────────


@cli.command()
@click.option("--interval", default=None, type=_positive,
              help="Seconds between archival cycles [env: ARCHIVER_INTERVAL, default: 60]")
@_policy_options
@click.pass_context
def run(
    ctx: click.Context,
    interval: float | None,
    no_comment_ttl: float | None,
    comment_ttl: float | None,
    dry_run: bool | None,
) -> None:
    """Run the archiver loop until interrupted.

    Example: board-archiver run --interval 30
    """
    cfg = ctx.obj["archiver_cfg"].with_overrides(
        interval=interval, no_comment_ttl=no_comment_ttl, comment_ttl=comment_ttl, dry_run=dry_run
    )
    stop = threading.Event()

    def _on_signal(signum: int, _frame: object) -> None:
        logging.getLogger("archiver.cli").info("Received signal %d, shutting down", signum)
        stop.set()

    signal.signal(signal.SIGINT, _on_signal)
    signal.signal(signal.SIGTERM, _on_signal)

    with _open_stores(ctx.obj["db_cfg"]) as (posts, comments):
        archiver = Archiver(posts, comments, interval=cfg.interval,
                            policy=cfg.policy(), dry_run=cfg.dry_run)
        console.print(f"[bold]Archiving every [cyan]{cfg.interval:g}s[/cyan]. Ctrl+C to stop.[/bold]")
        archiver.start(stop)
        while not stop.wait(0.5):
            pass
        archiver.stop()
        _print_stats(archiver.stats())


@cli.command()
@_policy_options
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
@click.pass_context
def once(
    ctx: click.Context,
    no_comment_ttl: float | None,
    comment_ttl: float | None,
    dry_run: bool | None,
    as_json: bool,
) -> None:
    """Run a single archival cycle and report what happened.

    Example: board-archiver once --dry-run
    """
    cfg = ctx.obj["archiver_cfg"].with_overrides(
        no_comment_ttl=no_comment_ttl, comment_ttl=comment_ttl, dry_run=dry_run
    )
    with _open_stores(ctx.obj["db_cfg"]) as (posts, comments):
        archiver = Archiver(posts, comments, policy=cfg.policy(), dry_run=cfg.dry_run)
        try:
            report = archiver.run_cycle()
        except CandidateListError as exc:
            if as_json:
                click.echo(json.dumps({"error": str(exc), "stats": archiver.stats().to_dict()}))
            else:
                console.print(f"[red]✗[/red] {exc}")
            sys.exit(1)

    if as_json:
        click.echo(json.dumps({"cycle": report.to_dict(), "stats": archiver.stats().to_dict()}))
        return
    _print_report(report)
    _print_stats(archiver.stats())


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
