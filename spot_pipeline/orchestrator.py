"""
Enrichment orchestrator.

Records are processed strictly sequentially in chunks of `batch_size`.
Each chunk becomes a queue of work units: one batched `year` and one
batched `category` unit for the chunk, plus `locales`, `country` and
`image` units per record. A rate-limited unit cools down and goes back to
the front of the queue until its attempt budget is spent; any other
provider failure skips the unit, leaving its fields as gaps for a later run.
Computed values are merged into one payload per record and written once
the chunk's queue is empty.
"""

from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime

from loguru import logger

from spot_pipeline.config import STEPS, UNKNOWN_COUNTRY, UNKNOWN_COUNTRY_JA
from spot_pipeline.context import PipelineContext
from spot_pipeline.errors import ParseError, RateLimited, TransientProviderError
from spot_pipeline.gaps import (
    CATEGORY,
    COUNTRY,
    IMAGE,
    YEAR,
    detect_gaps,
    gap_language,
    is_strong_pair,
    locale_gaps,
)
from spot_pipeline.records import SpotRecord, locale_fields
from spot_pipeline.scanner import scan_all
from spot_pipeline.utils.geo import is_valid_coordinates
from spot_pipeline.utils.text import base_name, compose_name, name_tags

BATCHED_STEPS = ("year", "category")


def step_gaps(step: str, gaps: set[str]) -> set[str]:
    """The subset of a record's gaps that `step` fills."""
    if step == "locales":
        return {gap for gap in gaps if gap_language(gap) is not None}
    single = {"year": YEAR, "category": CATEGORY, "country": COUNTRY, "image": IMAGE}[step]
    return {single} & gaps


@dataclass
class WorkUnit:
    """One provider call's worth of work: a step over one or more records."""
    step: str
    records: list[SpotRecord]
    attempts: int = 0

    @property
    def label(self) -> str:
        ids = ",".join(str(r.id) for r in self.records)
        return f"{self.step}[{ids}]"


@dataclass
class EnrichmentReport:
    """Result of an enrichment run."""
    records_scanned: int = 0
    records_complete: int = 0
    records_updated: int = 0
    write_failures: int = 0
    units_run: int = 0
    fields_written: Counter = field(default_factory=Counter)
    failures: Counter = field(default_factory=Counter)
    exhausted: Counter = field(default_factory=Counter)
    cooldowns: int = 0
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def duration_seconds(self) -> float | None:
        """Calculate duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None


class Enricher:
    """Ties gap detection to provider calls and hands results to the writer."""

    def __init__(self, context: PipelineContext, steps: tuple[str, ...] = STEPS):
        unknown = [step for step in steps if step not in STEPS]
        if unknown:
            raise ValueError(f"Unknown steps: {', '.join(unknown)}")

        self.ctx = context
        # Keep the canonical step order regardless of how they were given
        self.steps = tuple(step for step in STEPS if step in steps)

    # =========================================================================
    # Gap selection
    # =========================================================================

    def relevant_gaps(self, record: SpotRecord) -> set[str]:
        """Gaps of `record` that the enabled steps can fill."""
        gaps = detect_gaps(
            record,
            languages=self.ctx.languages,
            min_description_length=self.ctx.min_description_length,
            retry_unknown_country=self.ctx.retry_unknown_country,
        )
        wanted = set()
        for step in self.steps:
            wanted |= step_gaps(step, gaps)
        return wanted

    # =========================================================================
    # Run
    # =========================================================================

    def run_full(self, limit: int | None = None) -> EnrichmentReport:
        """Scan the whole store, then enrich every record that has gaps."""
        records = scan_all(self.ctx.store, page_size=self.ctx.page_size, limit=limit)
        return self.run(records)

    def run(self, records: list[SpotRecord]) -> EnrichmentReport:
        report = EnrichmentReport(started_at=datetime.now())
        report.records_scanned = len(records)
        cooldowns_before = self.ctx.rate.cooldowns
        fields_before = Counter(self.ctx.writer.fields_written)

        pending = []
        for record in records:
            gaps = self.relevant_gaps(record)
            if gaps:
                pending.append((record, gaps))
            else:
                report.records_complete += 1

        logger.info(
            f"{len(pending):,} of {len(records):,} records have gaps "
            f"(steps: {', '.join(self.steps)})"
        )

        batch_size = max(1, self.ctx.batch_size)
        for start in range(0, len(pending), batch_size):
            chunk = pending[start:start + batch_size]
            self.enrich_chunk(chunk, report)

            done = start + len(chunk)
            percent = round(100 * done / len(pending))
            logger.info(f"[{done}/{len(pending)}] ({percent}%) processed")

        report.cooldowns = self.ctx.rate.cooldowns - cooldowns_before
        report.fields_written = self.ctx.writer.fields_written - fields_before
        report.completed_at = datetime.now()
        logger.info(
            f"Enrichment finished: {report.records_updated} updated, "
            f"{report.records_complete} already complete, "
            f"{sum(report.failures.values())} failed units, "
            f"{sum(report.exhausted.values())} exhausted"
        )
        return report

    def enrich_chunk(self, chunk: list[tuple[SpotRecord, set[str]]], report: EnrichmentReport) -> None:
        """Run every unit of one chunk, then write one payload per record."""
        gaps_by_id = {record.id: gaps for record, gaps in chunk}
        payloads: dict[int, dict] = {record.id: {} for record, _ in chunk}

        queue = self.plan(chunk)
        while queue:
            unit = queue.popleft()
            report.units_run += 1

            try:
                self.run_unit(unit, gaps_by_id, payloads)
            except RateLimited as e:
                unit.attempts += 1
                self.ctx.rate.cooldown(e)
                if self.ctx.rate.allows_retry(unit.attempts):
                    logger.info(f"Retrying {unit.label} (attempt {unit.attempts + 1})")
                    queue.appendleft(unit)
                else:
                    report.exhausted[unit.step] += 1
                    logger.error(f"Giving up on {unit.label} after {unit.attempts} rate-limited attempts")
            except (TransientProviderError, ParseError) as e:
                report.failures[unit.step] += 1
                logger.warning(f"Skipping {unit.label}: {e}")

        for record, gaps in chunk:
            payload = payloads[record.id]
            if not payload:
                continue
            failures_before = self.ctx.writer.failures
            if self.ctx.writer.write(record, gaps, payload):
                report.records_updated += 1
            elif self.ctx.writer.failures > failures_before:
                report.write_failures += 1

    def plan(self, chunk: list[tuple[SpotRecord, set[str]]]) -> deque[WorkUnit]:
        """Build the work queue for one chunk in step order."""
        queue: deque[WorkUnit] = deque()

        for step in self.steps:
            needing = [record for record, gaps in chunk if step_gaps(step, gaps)]
            if not needing:
                continue
            if step in BATCHED_STEPS:
                queue.append(WorkUnit(step, needing))
            else:
                queue.extend(WorkUnit(step, [record]) for record in needing)

        return queue

    # =========================================================================
    # Steps
    # =========================================================================

    def run_unit(self, unit: WorkUnit, gaps_by_id: dict[int, set[str]], payloads: dict[int, dict]) -> None:
        handler = getattr(self, f"_run_{unit.step}")
        handler(unit, gaps_by_id, payloads)

    def _run_year(self, unit, gaps_by_id, payloads) -> None:
        years = self.ctx.inference.infer_years(unit.records)
        for record_id, year in years.items():
            payloads[record_id]["year"] = year

        missing = len(unit.records) - len(years)
        if missing:
            logger.debug(f"No year for {missing} of {len(unit.records)} spots")

    def _run_category(self, unit, gaps_by_id, payloads) -> None:
        categories = self.ctx.inference.classify_categories(unit.records)
        for record_id, category in categories.items():
            payloads[record_id]["category"] = category

    def _run_locales(self, unit, gaps_by_id, payloads) -> None:
        record = unit.records[0]
        languages = locale_gaps(gaps_by_id[record.id])
        texts = self.ctx.inference.translate(record, languages)
        tags = name_tags(record.name)

        for language, text in texts.items():
            name = compose_name(base_name(text.name), tags)
            if not is_strong_pair(name, text.description, language, self.ctx.min_description_length):
                logger.debug(f"Discarding weak {language} text for spot {record.id}")
                continue
            name_field, description_field = locale_fields(language)
            payloads[record.id][name_field] = name
            payloads[record.id][description_field] = text.description

    def _run_country(self, unit, gaps_by_id, payloads) -> None:
        record = unit.records[0]
        if not is_valid_coordinates(record.lat, record.lon):
            logger.warning(f"Spot {record.id} has invalid coordinates ({record.lat}, {record.lon}), skipping country")
            return

        names = self.ctx.geocoder.reverse_country(record.lat, record.lon)
        if names is None:
            payloads[record.id]["country"] = UNKNOWN_COUNTRY
            payloads[record.id]["country_ja"] = UNKNOWN_COUNTRY_JA
            return

        payloads[record.id]["country"] = names.search
        payloads[record.id]["country_ja"] = names.display

    def _run_image(self, unit, gaps_by_id, payloads) -> None:
        record = unit.records[0]
        hit = self.ctx.images.find(record)
        if hit is None:
            logger.debug(f"No image for spot {record.id}")
            return
        payloads[record.id]["image_url"] = hit.url
