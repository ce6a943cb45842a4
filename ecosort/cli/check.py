"""Source inspection commands."""

import asyncio
from typing import Optional

import psycopg
import typer
from rich.console import Console
from rich.table import Table

from ..config import Config
from ..db import SourceCacheStore, close_connection_pool, get_connection_pool
from ..logging_config import setup_logging
from ..validation import URLProber, classify_category, classify_stability

console = Console()


def check_command(
    url: str = typer.Argument(..., help="URL to probe"),
    previous_hash: Optional[str] = typer.Option(
        None,
        "--previous-hash",
        help="Content hash from an earlier check, to detect drift",
    ),
    timeout: Optional[float] = typer.Option(None, "--timeout", "-t", help="Per-attempt timeout in seconds"),
) -> None:
    """Probe one URL and print the verdict."""
    settings = Config().config
    setup_logging(settings.log_level, console)

    prober = URLProber(
        timeout=timeout or settings.validator.timeout_seconds,
        user_agent=settings.validator.user_agent,
    )
    result = asyncio.run(prober.probe(url, previous_hash=previous_hash))
    category = classify_category(url)

    table = Table(title="Source Check", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("URL", url)
    table.add_row("Valid", "[green]✓[/green]" if result.is_valid else "[red]✗[/red]")
    table.add_row("HTTP status", str(result.http_status) if result.http_status is not None else "-")
    table.add_row("Soft 404", "yes" if result.is_soft_404 else "no")
    table.add_row("Parked domain", "yes" if result.is_parked_domain else "no")
    table.add_row("Stability", classify_stability(url).value)
    table.add_row("Category", category.value if category else "-")
    table.add_row("Content hash", result.content_hash or "-")
    if previous_hash:
        table.add_row("Content changed", "yes" if result.content_changed else "no")
    if result.error_message:
        table.add_row("Error", f"[red]{result.error_message}[/red]")
    console.print(table)

    if not result.is_valid:
        raise typer.Exit(1)


async def _with_store(coro_factory):
    config = Config()
    pool = await get_connection_pool(config.get_db_config())
    try:
        return await coro_factory(SourceCacheStore(pool, config.config.cache.failure_lookback))
    finally:
        await close_connection_pool()


def lookup_command(
    location: str = typer.Argument(..., help="Location, e.g. 'Oakland, CA'"),
    item: str = typer.Argument(..., help="Item pattern, e.g. 'pizza box'"),
) -> None:
    """Print the cached sources for a location and item."""
    setup_logging("WARNING", console)
    cached = asyncio.run(_with_store(lambda store: store.read(location, item)))

    if cached is None:
        console.print(f"[yellow]Nothing cached for {location!r} / {item!r}.[/yellow]")
        raise typer.Exit(1)

    table = Table(title=f"Cached sources: {cached.location} / {cached.item_pattern}")
    table.add_column("Type", style="cyan")
    table.add_column("Value", style="blue")
    table.add_column("Verified", style="bold")
    table.add_column("Stability", style="magenta")
    for source in cached.sources:
        table.add_row(
            source.type.value,
            source.value,
            "[green]✓[/green]" if source.verified else "[red]✗[/red]",
            source.stability.value,
        )
    console.print(table)
    console.print(f"Last verified: {cached.last_verified_at or '-'}")
    console.print(f"Next check: {cached.next_check_date or '-'}")
    if cached.needs_validation():
        console.print("[yellow]Due for revalidation[/yellow]")


def report_command(
    limit: int = typer.Option(20, "--limit", "-n", help="Maximum rows", min=1),
    days: int = typer.Option(30, "--days", "-d", help="Look-back window in days", min=1),
) -> None:
    """Print sources with failed checks in the recent past."""
    setup_logging("WARNING", console)
    try:
        rows = asyncio.run(_with_store(lambda store: store.failure_report(limit=limit, days=days)))
    except psycopg.Error as e:
        console.print(f"[red]❌ Report failed: {e}[/red]")
        raise typer.Exit(1)

    if not rows:
        console.print("[green]No failed checks in the window.[/green]")
        return

    table = Table(title=f"Failing sources (last {days} days)")
    table.add_column("Location", style="cyan")
    table.add_column("Item", style="magenta")
    table.add_column("URL", style="blue")
    table.add_column("Failures", style="red")
    table.add_column("Checks", style="yellow")
    table.add_column("Last checked", style="dim")
    for row in rows:
        table.add_row(
            row["location"],
            row["item_pattern"],
            row["url"],
            str(row["failures"]),
            str(row["checks"]),
            str(row["last_checked_at"]),
        )
    console.print(table)
