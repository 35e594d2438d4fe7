"""
Gap coverage statistics.

Counts, over a full scan, how many records still have each kind of gap.
Locale strength is a heuristic that SQL cannot express, so the counts are
computed from the scanned records with the same detector the pipeline uses.
"""

from collections import Counter
from datetime import datetime

from rich.console import Console
from rich.table import Table

from spot_pipeline.config import SUPPORTED_LANGUAGES
from spot_pipeline.gaps import CATEGORY, COUNTRY, IMAGE, YEAR, detect_gaps, is_unknown_country, locale_gap
from spot_pipeline.records import SpotRecord


def gap_statistics(
    records: list[SpotRecord],
    languages: tuple[str, ...] = SUPPORTED_LANGUAGES,
    min_description_length: int = 20,
    retry_unknown_country: bool = False,
) -> dict:
    """Compute gap counts for a list of records."""
    counts: Counter[str] = Counter()
    complete = 0
    unknown_country = 0

    for record in records:
        gaps = detect_gaps(
            record,
            languages=languages,
            min_description_length=min_description_length,
            retry_unknown_country=retry_unknown_country,
        )
        counts.update(gaps)
        if not gaps:
            complete += 1
        if is_unknown_country(record):
            unknown_country += 1

    total = len(records)
    return {
        "timestamp": datetime.now().isoformat(),
        "total": total,
        "complete": complete,
        "unknown_country": unknown_country,
        "gaps": [
            {
                "gap": gap,
                "missing": counts[gap],
                "coverage_pct": round(100.0 * (total - counts[gap]) / total, 2) if total else 0.0,
            }
            for gap in [IMAGE, COUNTRY, YEAR, CATEGORY] + [locale_gap(lang) for lang in languages]
        ],
    }


def print_stats(stats: dict, console: Console | None = None) -> None:
    """Print gap statistics as a table."""
    console = console or Console()

    console.print(f"\n[bold]Spot field coverage[/bold] ({stats['timestamp']})")
    console.print(f"Total spots:     {stats['total']:>10,}")
    console.print(f"Complete spots:  {stats['complete']:>10,}")
    console.print(f"Unknown country: {stats['unknown_country']:>10,}")

    table = Table()
    table.add_column("Gap")
    table.add_column("Missing", justify="right")
    table.add_column("Coverage", justify="right")

    for row in stats["gaps"]:
        table.add_row(row["gap"], f"{row['missing']:,}", f"{row['coverage_pct']}%")

    console.print(table)
