"""
Pipeline context.

Everything a run talks to (store, writer, rate controller, provider
adapters) is constructed once here at startup and passed explicitly to the
orchestrator, so each component can be replaced by a test double.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import anthropic
from loguru import logger

from spot_pipeline.config import STEPS, Settings, require_settings
from spot_pipeline.database import Base, build_engine, session_factory
from spot_pipeline.providers.geocoding import MapboxGeocoder
from spot_pipeline.providers.images import ImageLookup, build_image_lookup
from spot_pipeline.providers.inference import TextInferenceAdapter
from spot_pipeline.rate_control import RateController
from spot_pipeline.store import RecordStore, SqlRecordStore
from spot_pipeline.utils.http import HttpFetcher
from spot_pipeline.writer import PersistenceWriter


@dataclass
class PipelineContext:
    """Components and run parameters shared by one enrichment run."""
    store: RecordStore
    writer: PersistenceWriter
    rate: RateController
    inference: Optional[TextInferenceAdapter] = None
    geocoder: Optional[MapboxGeocoder] = None
    images: Optional[ImageLookup] = None

    languages: tuple[str, ...] = ("ja", "en", "zh", "es", "fr")
    page_size: int = 1000
    batch_size: int = 10
    min_description_length: int = 20
    retry_unknown_country: bool = False

    _closers: list[Callable[[], Any]] = field(default_factory=list, repr=False)

    def close(self) -> None:
        while self._closers:
            self._closers.pop()()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def build_rate_controller(settings: Settings) -> RateController:
    return RateController(
        delays={
            "inference": settings.inference.delay_seconds,
            "mapbox": settings.geocoding.delay_seconds,
            "wikipedia": settings.images.wikipedia_delay_seconds,
            "pixabay": settings.images.pixabay_delay_seconds,
        },
        cooldown_seconds=settings.enrichment.rate_limit_cooldown,
        max_attempts=settings.enrichment.max_rate_limit_attempts,
    )


def build_store(settings: Settings, create_tables: bool = False) -> tuple[SqlRecordStore, Any]:
    """Create the SQL record store. Returns (store, engine)."""
    engine = build_engine(
        settings.resolved_database_url,
        echo=settings.enrichment.log_level == "DEBUG",
    )
    if create_tables:
        Base.metadata.create_all(engine)
    return SqlRecordStore(session_factory(engine)), engine


def build_context(
    settings: Settings,
    steps: tuple[str, ...] = STEPS,
    dry_run: bool = False,
) -> PipelineContext:
    """
    Construct every component a run needs.

    Raises:
        FatalConfigError: required configuration is missing
    """
    require_settings(settings, steps)
    enrichment = settings.enrichment

    store, engine = build_store(settings)
    rate = build_rate_controller(settings)

    context = PipelineContext(
        store=store,
        writer=PersistenceWriter(store, dry_run=dry_run),
        rate=rate,
        languages=tuple(enrichment.language_list),
        page_size=enrichment.page_size,
        batch_size=enrichment.batch_size,
        min_description_length=enrichment.min_description_length,
        retry_unknown_country=enrichment.retry_unknown_country,
    )
    context._closers.append(engine.dispose)

    if {"year", "category", "locales"} & set(steps):
        client = anthropic.Anthropic(api_key=settings.inference.anthropic_api_key)
        context.inference = TextInferenceAdapter(
            client,
            model=settings.inference.model,
            rate=rate,
            max_tokens=settings.inference.max_tokens,
        )
        context._closers.append(client.close)

    if {"country", "image"} & set(steps):
        http = HttpFetcher(
            timeout=enrichment.http_timeout,
            max_retries=enrichment.http_max_retries,
            retry_delay=enrichment.http_retry_delay,
        )
        context._closers.append(http.close)

        if "country" in steps:
            context.geocoder = MapboxGeocoder(
                http,
                settings.geocoding.access_token,
                rate,
                search_locale=settings.geocoding.search_locale,
                display_locale=settings.geocoding.display_locale,
            )
        if "image" in steps:
            context.images = build_image_lookup(
                http,
                rate,
                pixabay_api_key=settings.images.pixabay_api_key,
                thumbnail_size=settings.images.thumbnail_size,
                localized_locale=settings.images.localized_query_locale,
            )

    logger.info(f"Pipeline context ready (steps: {', '.join(steps)}, dry_run={dry_run})")
    return context
