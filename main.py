#!/usr/bin/env python3
"""
NewsDesk - RSS/Atom News Aggregator
===================================

Main application entry point with CLI interface for fetching and debugging.

Usage:
    python main.py --help                    # Show all commands
    python main.py check-config              # Validate configuration
    python main.py list-sources              # Show configured feeds
    python main.py fetch-news                # Aggregate all feeds
    python main.py fetch-news --json         # Same, as JSON
    python main.py parse-file feed.xml --source "BBC Tech"
"""

import sys
import json
import asyncio
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from newsdesk.config.settings import get_settings
from newsdesk.config.sources import DEFAULT_SOURCES, get_source, validate_sources
from newsdesk.ingestion.feed_parser import parse_feed_document
from newsdesk.processing.aggregator import fetch_all_news
from newsdesk.utils.logging import configure_application_logging
from newsdesk.utils.exceptions import NewsDeskError, get_user_friendly_message

console = Console()
logger = logging.getLogger(__name__)


@click.group(invoke_without_command=True)
@click.option('--debug', is_flag=True, help='Enable debug mode')
@click.pass_context
def cli(ctx, debug):
    """NewsDesk - concurrent RSS/Atom news aggregator."""
    ctx.ensure_object(dict)
    ctx.obj['debug'] = debug

    if ctx.invoked_subcommand is None:
        # Show help if no subcommand provided
        click.echo(ctx.get_help())


def _setup_logging(ctx, settings) -> None:
    configure_application_logging(
        log_level="DEBUG" if ctx.obj.get('debug') else settings.get_effective_log_level(),
        log_file=settings.logging.file_path,
        enable_console=settings.logging.console_logging,
        structured_logging=settings.logging.structured_logging,
        max_file_size_mb=settings.logging.max_file_size_mb,
        backup_count=settings.logging.backup_count,
    )


@cli.command()
def check_config():
    """Validate environment configuration and the source registry."""
    console.print("[bold blue]🔧 Checking NewsDesk Configuration[/bold blue]")

    try:
        settings = get_settings()

        table = Table(title="Configuration Status")
        table.add_column("Component", style="cyan")
        table.add_column("Status", style="green")
        table.add_column("Details")

        checks = [
            ("Sources", _check_sources_config, settings),
            ("Aggregation", _check_aggregation_config, settings),
            ("Fetching", _check_fetch_config, settings),
            ("Logging", _check_logging_config, settings),
        ]

        all_passed = True
        for name, check_func, config in checks:
            try:
                status, details = check_func(config)
                table.add_row(name, "✅ Valid" if status else "❌ Invalid", details)
                if not status:
                    all_passed = False
            except Exception as e:
                table.add_row(name, "❌ Error", str(e))
                all_passed = False

        console.print(table)

        if all_passed:
            console.print("[bold green]✅ All configuration checks passed![/bold green]")
            sys.exit(0)
        else:
            console.print("[bold red]❌ Configuration validation failed[/bold red]")
            sys.exit(1)

    except NewsDeskError as e:
        console.print(f"[bold red]❌ Configuration error: {e.user_message}[/bold red]")
        sys.exit(1)


@cli.command()
def list_sources():
    """Show the configured feeds and retention limits."""
    settings = get_settings()

    table = Table(title=f"News Sources ({len(DEFAULT_SOURCES)})")
    table.add_column("Name", style="cyan")
    table.add_column("Category", style="yellow")
    table.add_column("URL", style="blue")

    for source in DEFAULT_SOURCES:
        table.add_row(source.name, source.category.value, source.url)

    console.print(table)
    console.print(
        f"Max age: {settings.aggregation.max_age_days} days, "
        f"max items per source: {settings.aggregation.max_items_per_source}"
    )


@cli.command()
@click.option('--limit', default=30, show_default=True, help='Number of items to display')
@click.option('--json', 'as_json', is_flag=True, help='Print the full result as JSON')
@click.pass_context
def fetch_news(ctx, limit, as_json):
    """Fetch all sources and print the merged news list."""
    settings = get_settings()
    _setup_logging(ctx, settings)

    try:
        result = asyncio.run(fetch_all_news(settings=settings))
    except NewsDeskError as e:
        console.print(f"[bold red]❌ {e.user_message}[/bold red]")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return

    table = Table(title=f"Latest News ({len(result.items)} items)")
    table.add_column("Published", style="green", no_wrap=True)
    table.add_column("Source", style="cyan")
    table.add_column("Category", style="yellow")
    table.add_column("Title")

    for item in result.items[:limit]:
        table.add_row(
            item.published_at.strftime("%Y-%m-%d %H:%M"),
            item.source,
            item.category.value,
            item.title,
        )

    console.print(table)

    if result.errors:
        console.print(f"\n[bold red]⚠️ {len(result.errors)} feed(s) failed:[/bold red]")
        for error in result.errors:
            console.print(f"  • [bold]{error.source}[/bold]: {error.message}")


@cli.command()
@click.argument('path', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--source', 'source_name', required=True, help='Configured source the file came from')
@click.pass_context
def parse_file(ctx, path, source_name):
    """Parse a saved feed document offline and show the items it yields."""
    settings = get_settings()
    _setup_logging(ctx, settings)

    source = get_source(source_name)
    if source is None:
        names = ", ".join(s.name for s in DEFAULT_SOURCES)
        console.print(f"[bold red]❌ Unknown source '{source_name}'. Known sources: {names}[/bold red]")
        sys.exit(1)

    parsed = parse_feed_document(
        path.read_bytes(),
        source,
        summary_max_length=settings.aggregation.summary_max_length,
        min_title_length=settings.aggregation.min_title_length,
    )

    console.print(
        f"[bold blue]📄 {path.name}[/bold blue]: dialect={parsed.dialect.value}, "
        f"outcome={parsed.outcome.value}, items={len(parsed.items)}, dropped={parsed.dropped_count}"
    )
    if parsed.dropped:
        for reason, count in sorted(parsed.dropped.items()):
            console.print(f"  dropped {count} ({reason})")
    if parsed.detail:
        console.print(f"  [yellow]detail: {parsed.detail}[/yellow]")

    for i, item in enumerate(parsed.items, 1):
        console.print(f"\n{i}. [bold]{item.title}[/bold]")
        console.print(f"   📅 Published: {item.published_at.isoformat()}")
        console.print(f"   🔗 Link: {item.url}")
        if item.summary:
            console.print(f"   📝 Summary: {item.summary}")


# Helper functions for configuration checks
def _check_sources_config(settings) -> tuple[bool, str]:
    """Check the source registry."""
    validate_sources(DEFAULT_SOURCES)
    return True, f"{len(DEFAULT_SOURCES)} sources, names unique"


def _check_aggregation_config(settings) -> tuple[bool, str]:
    """Check retention limits."""
    aggregation = settings.aggregation
    return True, (
        f"Max age: {aggregation.max_age_days}d, per source: {aggregation.max_items_per_source}, "
        f"summary: {aggregation.summary_max_length} chars"
    )


def _check_fetch_config(settings) -> tuple[bool, str]:
    """Check HTTP client settings."""
    fetch = settings.fetch
    concurrency = fetch.max_concurrent or "one per source"
    return True, f"Timeout: {fetch.request_timeout}s, concurrency: {concurrency}"


def _check_logging_config(settings) -> tuple[bool, str]:
    """Check logging configuration."""
    try:
        if settings.logging.file_path:
            log_path = Path(settings.logging.file_path)
            log_path.parent.mkdir(parents=True, exist_ok=True)
        return True, f"Level: {settings.logging.level.value}, Console: {settings.logging.console_logging}"
    except OSError as e:
        return False, str(e)


if __name__ == "__main__":
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]👋 NewsDesk interrupted by user[/yellow]")
        sys.exit(130)
    except Exception as e:
        logger.error("Unhandled CLI error", exc_info=True)
        console.print(f"\n[bold red]❌ {get_user_friendly_message(e)}[/bold red]")
        sys.exit(1)
