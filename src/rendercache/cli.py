"""Click CLI for rendercache — inspect and manage a render cache."""

from __future__ import annotations

import logging
import re
import sys
from pathlib import Path

import click
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from rendercache.cache.manager import RenderCache
from rendercache.config.hierarchy import load_settings
from rendercache.errors.exceptions import RenderCacheError
from rendercache.types import MatchMode

console = Console()
error_console = Console(stderr=True)


def _setup_logging(verbosity: int, base_level: str = "WARNING") -> None:
    """Configure logging from the configured level; -v flags only raise verbosity."""
    level = logging.getLevelName(base_level)
    if verbosity == 1:
        level = min(level, logging.INFO)
    elif verbosity >= 2:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=error_console, show_time=False, show_path=False)],
    )
    logging.getLogger("rendercache").setLevel(level)


def _open_cache(ctx: click.Context) -> RenderCache:
    cache = RenderCache.from_settings(ctx.obj["settings"])
    if not cache.enabled:
        error_console.print(f"[red]Error:[/red] cache at {cache.root} is disabled.")
        sys.exit(1)
    return cache


@click.group()
@click.version_option(package_name="rendercache")
@click.option(
    "--cache-root", type=click.Path(file_okay=False, path_type=Path), help="Cache directory."
)
@click.option("--salt", type=str, default=None, help="Hashing salt for stored filenames.")
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v info, -vv debug).")
@click.pass_context
def cli(ctx: click.Context, cache_root: Path | None, salt: str | None, verbose: int) -> None:
    """rendercache — filesystem cache for rendered artifacts."""
    try:
        settings = load_settings(cache_root=cache_root, salt=salt)
    except ValidationError as e:
        error_console.print(f"[red]Invalid configuration:[/red] {e}")
        sys.exit(1)
    _setup_logging(verbose, settings.log_level)
    ctx.obj = {"settings": settings}


@cli.command()
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("name")
@click.option("-g", "--group", type=str, default=None, help="Cache group.")
@click.option("--ttl", type=float, default=None, help="Seconds until the item expires.")
@click.option("--keep", is_flag=True, default=False, help="Keep the file after expiry.")
@click.pass_context
def put(
    ctx: click.Context,
    source: Path,
    name: str,
    group: str | None,
    ttl: float | None,
    keep: bool,
) -> None:
    """Cache SOURCE under NAME."""
    cache = _open_cache(ctx)
    try:
        stored = cache.put(name, source, ttl=ttl, keep=keep, group=group)
    except (RenderCacheError, OSError) as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    if not stored:
        error_console.print(f"[yellow]'{name}' was not cached.[/yellow]")
        sys.exit(1)
    console.print(f"[green]Cached {name} -> {cache.get_path(name, group=group)}[/green]")


@cli.command()
@click.argument("name")
@click.option("-g", "--group", type=str, default=None, help="Cache group.")
@click.pass_context
def path(ctx: click.Context, name: str, group: str | None) -> None:
    """Print the stored path of NAME."""
    _print_location(_open_cache(ctx).get_path(name, group=group), name)


@cli.command()
@click.argument("name")
@click.option("-g", "--group", type=str, default=None, help="Cache group.")
@click.pass_context
def url(ctx: click.Context, name: str, group: str | None) -> None:
    """Print the URL of NAME."""
    _print_location(_open_cache(ctx).get_url(name, group=group), name)


def _print_location(location: object, name: str) -> None:
    if location is None:
        error_console.print(f"[yellow]'{name}' is not cached.[/yellow]")
        sys.exit(1)
    click.echo(str(location))


@cli.command()
@click.argument("name")
@click.option("-g", "--group", type=str, default=None, help="Cache group.")
@click.pass_context
def has(ctx: click.Context, name: str, group: str | None) -> None:
    """Exit 0 if NAME is cached (kept items included), 1 otherwise."""
    present = _open_cache(ctx).has(name, group=group)
    console.print("yes" if present else "no")
    sys.exit(0 if present else 1)


@cli.command()
@click.argument("name")
@click.option("-g", "--group", type=str, default=None, help="Cache group.")
@click.pass_context
def expired(ctx: click.Context, name: str, group: str | None) -> None:
    """Exit 0 if NAME is expired and needs refreshing, 1 otherwise."""
    is_expired = _open_cache(ctx).expired(name, group=group)
    console.print("yes" if is_expired else "no")
    sys.exit(0 if is_expired else 1)


@cli.command()
@click.argument("name")
@click.argument("seconds", type=float)
@click.option("-g", "--group", type=str, default=None, help="Cache group.")
@click.pass_context
def extend(ctx: click.Context, name: str, seconds: float, group: str | None) -> None:
    """Push back the expiry of NAME by SECONDS."""
    if not _open_cache(ctx).extend(name, seconds, group=group):
        error_console.print(f"[yellow]'{name}' is not cached.[/yellow]")
        sys.exit(1)
    console.print(f"[green]Extended {name} by {seconds:g}s[/green]")


@cli.command()
@click.argument("pattern")
@click.option(
    "--mode",
    type=click.Choice([m.value for m in MatchMode], case_sensitive=False),
    default=MatchMode.STRICT.value,
    show_default=True,
    help="How PATTERN matches item names.",
)
@click.option("-g", "--group", type=str, default=None, help="Cache group.")
@click.pass_context
def expire(ctx: click.Context, pattern: str, mode: str, group: str | None) -> None:
    """Remove the items whose names match PATTERN."""
    cache = _open_cache(ctx)
    try:
        removed = cache.expire(pattern, mode=mode, group=group)
    except (re.error, ValueError, RenderCacheError, OSError) as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    for name in removed:
        console.print(f"  - {name}")
    console.print(f"[green]Expired {len(removed)} item(s).[/green]")


@cli.command("group")
@click.argument("group_name")
@click.pass_context
def show_group(ctx: click.Context, group_name: str) -> None:
    """List the items in GROUP_NAME."""
    cache = _open_cache(ctx)
    items = cache.get_group(group_name)

    table = Table(title=f"Group '{group_name}'", show_header=True)
    table.add_column("Name", style="cyan")
    table.add_column("Size")
    table.add_column("Expires in")
    table.add_column("Keep")

    for item in sorted(items.values(), key=lambda i: i.name):
        remaining = item.expires_at - cache.now()
        expires = f"{remaining:,.0f}s" if remaining > 0 else "[yellow]expired[/yellow]"
        path = cache.root / item.stored_filename
        size = f"{path.stat().st_size:,} B" if path.is_file() else "[red]missing[/red]"
        table.add_row(item.name, size, expires, "yes" if item.keep else "no")

    console.print(table)


@cli.command("clear-expired")
@click.argument("group_name", required=False)
@click.pass_context
def clear_expired(ctx: click.Context, group_name: str | None) -> None:
    """Remove expired items from GROUP_NAME (default group if omitted)."""
    removed = _open_cache(ctx).clear_expired(group_name)
    console.print(f"[green]Cleared {len(removed)} expired item(s).[/green]")


@cli.command()
@click.confirmation_option(prompt="Are you sure you want to purge the cache?")
@click.pass_context
def purge(ctx: click.Context) -> None:
    """Remove every cached item in every group."""
    _open_cache(ctx).purge()
    console.print("[green]Cache purged.[/green]")


@cli.command()
@click.pass_context
def stats(ctx: click.Context) -> None:
    """Show cache statistics."""
    cache = _open_cache(ctx)
    result = cache.stats()

    table = Table(title="Cache Statistics", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value")

    table.add_row("Root", str(cache.root))
    table.add_row("Groups", str(result.groups))
    table.add_row("Items", str(result.items))
    table.add_row("Present", str(result.alive_items))
    table.add_row("Expired", str(result.expired_items))
    table.add_row("Size (MB)", f"{result.size_mb:.1f}")

    console.print(table)


def main() -> None:
    """Entry point for the CLI."""
    cli()
