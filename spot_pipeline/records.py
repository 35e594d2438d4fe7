"""
Plain record values passed between pipeline components.

Records are copied out of the store so that gap detection and provider
calls never touch a live database session.
"""

from dataclasses import dataclass, fields
from typing import Any, Optional

from spot_pipeline.utils.text import base_name


@dataclass
class SpotRecord:
    """Snapshot of one row of the spots table."""
    id: int
    name: str
    description: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None
    category: Optional[str] = None
    year: Optional[int] = None
    country: Optional[str] = None
    country_ja: Optional[str] = None
    image_url: Optional[str] = None
    name_ja: Optional[str] = None
    description_ja: Optional[str] = None
    name_en: Optional[str] = None
    description_en: Optional[str] = None
    name_zh: Optional[str] = None
    description_zh: Optional[str] = None
    name_es: Optional[str] = None
    description_es: Optional[str] = None
    name_fr: Optional[str] = None
    description_fr: Optional[str] = None

    @classmethod
    def from_row(cls, row: Any) -> "SpotRecord":
        """Build a record from an ORM object or any attribute-bearing row."""
        return cls(**{f.name: getattr(row, f.name) for f in fields(cls)})

    def locale_pair(self, language: str) -> tuple[Optional[str], Optional[str]]:
        return getattr(self, f"name_{language}"), getattr(self, f"description_{language}")

    @property
    def base_name(self) -> str:
        return base_name(self.name)

    @property
    def search_name(self) -> str:
        """English base name, used for encyclopedia and stock photo queries."""
        return base_name(self.name_en or self.name)

    def localized_name(self, language: str) -> str:
        return base_name(getattr(self, f"name_{language}", None) or self.name)

    @property
    def best_description(self) -> Optional[str]:
        return self.description or self.description_en or self.description_ja


RECORD_FIELDS = frozenset(f.name for f in fields(SpotRecord))

# Columns the enrichment pipeline may write
WRITABLE_FIELDS = RECORD_FIELDS - {"id", "name", "description", "lat", "lon"}


def locale_fields(language: str) -> tuple[str, str]:
    return f"name_{language}", f"description_{language}"
