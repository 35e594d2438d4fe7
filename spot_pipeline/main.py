#!/usr/bin/env python3
"""
Spot enrichment pipeline - entry point.

Backfills missing country, image, year, category and per-language
name/description fields of the spots table. Every run rescans the whole
table and only calls providers for fields that are still gaps.

Usage:
    spots enrich
    spots enrich --only image --only country --limit 500
    spots enrich --dry-run
    spots status
    spots config
"""

import sys
from pathlib import Path

import click
from loguru import logger
from rich.console import Console
from rich.table import Table

from spot_pipeline.config import STEPS, get_settings, require_settings
from spot_pipeline.context import build_context, build_store
from spot_pipeline.errors import FatalConfigError
from spot_pipeline.orchestrator import Enricher, EnrichmentReport
from spot_pipeline.scanner import scan_all
from spot_pipeline.stats import gap_statistics, print_stats
from spot_pipeline.utils.logging import setup_logging


console = Console()


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--log-file", type=click.Path(path_type=Path), default=None, help="Also log to this file")
def cli(debug: bool, log_file: Path | None):
    """Spot enrichment pipeline"""
    level = "DEBUG" if debug else get_settings().enrichment.log_level
    setup_logging(level=level, log_file=log_file)


@cli.command()
@click.option("--only", "only", multiple=True, type=click.Choice(list(STEPS)), help="Run only these steps (repeatable)")
@click.option("--limit", type=int, default=None, help="Process at most this many records")
@click.option("--dry-run", is_flag=True, help="Call providers but write nothing")
def enrich(only: tuple[str, ...], limit: int | None, dry_run: bool):
    """
    Fill missing fields of every spot.

    Safe to interrupt and re-run: completed fields are never requested again.
    """
    steps = tuple(only) or STEPS
    settings = get_settings()

    try:
        context = build_context(settings, steps=steps, dry_run=dry_run)
    except FatalConfigError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    console.print("\n[bold blue]Spot enrichment[/bold blue]")
    console.print(f"Steps: {', '.join(steps)}")
    console.print(f"Dry run: {dry_run}\n")

    try:
        with context:
            report = Enricher(context, steps=steps).run_full(limit=limit)
    except FatalConfigError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    print_report(report)


@cli.command()
def status():
    """Show how many spots still have each kind of gap."""
    settings = get_settings()
    try:
        require_settings(settings, steps=())
    except FatalConfigError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    store, engine = build_store(settings)
    try:
        records = scan_all(store, page_size=settings.enrichment.page_size)
    except FatalConfigError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
    finally:
        engine.dispose()

    stats = gap_statistics(
        records,
        languages=tuple(settings.enrichment.language_list),
        min_description_length=settings.enrichment.min_description_length,
        retry_unknown_country=settings.enrichment.retry_unknown_country,
    )
    print_stats(stats, console)


@cli.command("config")
def config_status():
    """Print which provider credentials are configured."""
    settings = get_settings()

    rows = [
        ("Database", settings.resolved_database_url, "DATABASE_URL / POSTGRES_*"),
        ("Anthropic", settings.inference.anthropic_api_key, "INFERENCE_ANTHROPIC_API_KEY"),
        ("Mapbox", settings.geocoding.access_token, "MAPBOX_ACCESS_TOKEN"),
        ("Pixabay", settings.images.pixabay_api_key, "IMAGES_PIXABAY_API_KEY (optional)"),
    ]

    table = Table(title="Configuration")
    table.add_column("Service")
    table.add_column("Status")
    table.add_column("Value")
    table.add_column("Variable")

    for name, value, variable in rows:
        status = "[green]OK[/green]" if value else "[red]MISSING[/red]"
        masked = f"{value[:4]}...{value[-4:]}" if value and len(value) > 8 else ("SET" if value else "NOT SET")
        table.add_row(name, status, masked, variable)

    console.print(table)
    console.print(f"Languages: {', '.join(settings.enrichment.language_list)}")


def print_report(report: EnrichmentReport) -> None:
    """Print the run summary."""
    console.print("\n[bold]Enrichment Summary[/bold]")

    table = Table()
    table.add_column("Metric")
    table.add_column("Value", justify="right")

    duration = f"{report.duration_seconds:.1f}s" if report.duration_seconds is not None else "-"
    table.add_row("Scanned", f"{report.records_scanned:,}")
    table.add_row("Already complete", f"{report.records_complete:,}")
    table.add_row("Updated", f"{report.records_updated:,}")
    table.add_row("Write failures", f"{report.write_failures:,}")
    table.add_row("Provider units", f"{report.units_run:,}")
    table.add_row("Failed units", f"{sum(report.failures.values()):,}")
    table.add_row("Rate-limit exhausted", f"{sum(report.exhausted.values()):,}")
    table.add_row("Cooldowns", f"{report.cooldowns:,}")
    table.add_row("Duration", duration)
    console.print(table)

    if report.fields_written:
        fields = Table(title="Fields written")
        fields.add_column("Field")
        fields.add_column("Count", justify="right")
        for name, count in sorted(report.fields_written.items()):
            fields.add_row(name, f"{count:,}")
        console.print(fields)

    if report.exhausted:
        logger.warning(f"Rate-limit budget exhausted for: {dict(report.exhausted)}")


if __name__ == "__main__":
    cli()
