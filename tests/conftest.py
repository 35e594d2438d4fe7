# SPDX-License-Identifier: MIT
"""Pytest configuration and fixtures for the spot enrichment tests."""

import pytest

from spot_pipeline.database import Base, Spot, build_engine, session_factory, session_scope
from spot_pipeline.errors import RateLimited
from spot_pipeline.providers.geocoding import CountryNames
from spot_pipeline.providers.images import ImageHit
from spot_pipeline.providers.schemas import LocaleText
from spot_pipeline.rate_control import RateController
from spot_pipeline.records import SpotRecord
from spot_pipeline.store import SqlRecordStore
from spot_pipeline.writer import PersistenceWriter
from spot_pipeline.context import PipelineContext


HIMEJI_TEXTS = {
    "ja": ("姫路城", "白鷺城とも呼ばれる日本を代表する城で、世界遺産に登録されています。"),
    "en": ("Himeji Castle", "A hilltop castle complex, the finest surviving example of early 17th century Japanese castle architecture."),
    "zh": ("姬路城", "日本最具代表性的城堡之一，被列入世界遗产名录，也被称为白鹭城。"),
    "es": ("Castillo de Himeji", "Complejo de castillo en una colina, el mejor ejemplo conservado de la arquitectura de castillos japonesa."),
    "fr": ("Château de Himeji", "Château perché sur une colline, le plus bel exemple conservé de l'architecture castrale japonaise."),
}


# =============================================================================
# Records
# =============================================================================

@pytest.fixture
def sample_spot_data() -> dict:
    """A spot as created by the importer: only name, description and coordinates."""
    return {
        "id": 1,
        "name": "Himeji Castle #WorldHeritage",
        "description": "World Heritage Site",
        "lat": 34.8394,
        "lon": 134.6939,
        "category": "landmark",
    }


@pytest.fixture
def complete_spot_data(sample_spot_data: dict) -> dict:
    """A spot with every field filled and strong."""
    data = {
        **sample_spot_data,
        "category": "history",
        "year": 1346,
        "country": "Japan",
        "country_ja": "日本",
        "image_url": "https://upload.wikimedia.org/himeji.jpg",
    }
    for lang, (name, description) in HIMEJI_TEXTS.items():
        data[f"name_{lang}"] = name
        data[f"description_{lang}"] = description
    return data


@pytest.fixture
def make_record(sample_spot_data: dict):
    """Factory for SpotRecord objects based on the sample spot."""
    def _make(**overrides) -> SpotRecord:
        return SpotRecord(**{**sample_spot_data, **overrides})
    return _make


# =============================================================================
# Store
# =============================================================================

@pytest.fixture
def db_factory():
    """Session factory for an in-memory SQLite database with the spots table."""
    engine = build_engine("sqlite://")
    Base.metadata.create_all(engine)
    yield session_factory(engine)
    engine.dispose()


@pytest.fixture
def sql_store(db_factory) -> SqlRecordStore:
    return SqlRecordStore(db_factory)


@pytest.fixture
def insert_spots(db_factory):
    """Insert rows into the spots table from dicts."""
    def _insert(*rows: dict) -> None:
        with session_scope(db_factory) as session:
            for row in rows:
                session.add(Spot(**row))
    return _insert


@pytest.fixture
def load_spot(db_factory):
    """Read a single spot back as a SpotRecord."""
    def _load(spot_id: int) -> SpotRecord:
        with session_scope(db_factory) as session:
            return SpotRecord.from_row(session.get(Spot, spot_id))
    return _load


class ListStore:
    """In-memory RecordStore that records every call."""

    def __init__(self, records: list[SpotRecord] | None = None):
        self.records = sorted(records or [], key=lambda r: r.id)
        self.reads: list[tuple[int, int]] = []
        self.updates: list[tuple[int, dict]] = []

    def read_page(self, offset: int, limit: int) -> list[SpotRecord]:
        self.reads.append((offset, limit))
        return self.records[offset:offset + limit]

    def update_fields(self, record_id: int, fields: dict) -> bool:
        self.updates.append((record_id, dict(fields)))
        for record in self.records:
            if record.id == record_id:
                for key, value in fields.items():
                    setattr(record, key, value)
                return True
        return False


@pytest.fixture
def list_store() -> ListStore:
    return ListStore()


@pytest.fixture
def store_of():
    """Factory for a ListStore holding the given records."""
    def _make(*records: SpotRecord) -> ListStore:
        return ListStore(list(records))
    return _make


class BrokenPageStore(ListStore):
    """ListStore whose reads fail from a given offset on."""

    def __init__(self, records: list[SpotRecord], fail_from: int):
        super().__init__(records)
        self.fail_from = fail_from

    def read_page(self, offset: int, limit: int) -> list[SpotRecord]:
        if offset >= self.fail_from:
            self.reads.append((offset, limit))
            raise RuntimeError("connection reset")
        return super().read_page(offset, limit)


@pytest.fixture
def broken_store_of():
    """Factory for a store holding `records` whose reads fail from offset `fail_from`."""
    def _make(*records: SpotRecord, fail_from: int) -> BrokenPageStore:
        return BrokenPageStore(list(records), fail_from)
    return _make


# =============================================================================
# Provider fakes
# =============================================================================

class FakeInference:
    """Stands in for TextInferenceAdapter.

    `errors` maps a method name to a list of exceptions raised, in order, by
    the next calls to that method.
    """

    def __init__(self):
        self.years: dict[int, int] = {}
        self.categories: dict[int, str] = {}
        self.texts: dict[str, tuple[str, str]] = dict(HIMEJI_TEXTS)
        self.errors: dict[str, list[Exception]] = {}
        self.calls: list[tuple[str, list[int]]] = []

    def _call(self, method: str, ids: list[int]) -> None:
        self.calls.append((method, ids))
        pending = self.errors.get(method)
        if pending:
            raise pending.pop(0)

    def infer_years(self, records):
        self._call("infer_years", [r.id for r in records])
        return {r.id: self.years[r.id] for r in records if r.id in self.years}

    def classify_categories(self, records):
        self._call("classify_categories", [r.id for r in records])
        return {r.id: self.categories[r.id] for r in records if r.id in self.categories}

    def translate(self, record, languages):
        self._call("translate", [record.id])
        return {
            lang: LocaleText(name=self.texts[lang][0], description=self.texts[lang][1])
            for lang in languages
            if lang in self.texts
        }


class FakeGeocoder:
    def __init__(self, result: CountryNames | None = CountryNames("Japan", "日本")):
        self.result = result
        self.errors: list[Exception] = []
        self.calls: list[tuple[float, float]] = []

    def reverse_country(self, lat, lon):
        self.calls.append((lat, lon))
        if self.errors:
            raise self.errors.pop(0)
        return self.result


class FakeImages:
    def __init__(self, url: str | None = "https://upload.wikimedia.org/thumb/himeji.jpg"):
        self.url = url
        self.errors: list[Exception] = []
        self.calls: list[int] = []

    def find(self, record):
        self.calls.append(record.id)
        if self.errors:
            raise self.errors.pop(0)
        return ImageHit(url=self.url, source="wikipedia") if self.url else None


@pytest.fixture
def fake_inference() -> FakeInference:
    return FakeInference()


@pytest.fixture
def fake_geocoder() -> FakeGeocoder:
    return FakeGeocoder()


@pytest.fixture
def fake_images() -> FakeImages:
    return FakeImages()


@pytest.fixture
def sleeps() -> list[float]:
    """Every duration passed to the rate controller's sleep."""
    return []


@pytest.fixture
def rate(sleeps) -> RateController:
    """Rate controller with no inter-call delay and a recorded cooldown."""
    return RateController(
        delays={},
        default_delay=0.0,
        cooldown_seconds=60.0,
        max_attempts=3,
        sleep=sleeps.append,
    )


@pytest.fixture
def rate_limited():
    def _make(provider: str = "inference") -> RateLimited:
        return RateLimited("429 Too Many Requests", provider=provider)
    return _make


@pytest.fixture
def make_context(rate, fake_inference, fake_geocoder, fake_images):
    """Build a PipelineContext around a store, using the fake providers."""
    def _make(store, dry_run: bool = False, **overrides) -> PipelineContext:
        params = {
            "store": store,
            "writer": PersistenceWriter(store, dry_run=dry_run),
            "rate": rate,
            "inference": fake_inference,
            "geocoder": fake_geocoder,
            "images": fake_images,
            "page_size": 1000,
            "batch_size": 10,
        }
        params.update(overrides)
        return PipelineContext(**params)
    return _make

