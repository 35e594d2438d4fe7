"""
Field gap detection.

A gap is a field that is absent or judged too weak to count as filled.
Detection is a pure function of the record's current values; nothing is
cached and no "enriched" flag exists, so completeness is re-derived on
every run.
"""

from spot_pipeline.config import (
    DEFAULT_CATEGORY,
    PLACEHOLDER_DESCRIPTIONS,
    SUPPORTED_LANGUAGES,
    UNKNOWN_COUNTRY,
    UNKNOWN_COUNTRY_JA,
)
from spot_pipeline.records import SpotRecord, locale_fields
from spot_pipeline.utils.text import base_name, clean_text, has_script

IMAGE = "image"
COUNTRY = "country"
YEAR = "year"
CATEGORY = "category"
LOCALE_PREFIX = "locale:"

MIN_DESCRIPTION_LENGTH = 20


def locale_gap(language: str) -> str:
    return f"{LOCALE_PREFIX}{language}"


def gap_language(gap: str) -> str | None:
    """Return the language of a locale gap, or None for other gaps."""
    if gap.startswith(LOCALE_PREFIX):
        return gap[len(LOCALE_PREFIX):]
    return None


def gap_fields(gap: str) -> tuple[str, ...]:
    """Record fields a gap may be filled through."""
    language = gap_language(gap)
    if language is not None:
        return locale_fields(language)
    return {
        IMAGE: ("image_url",),
        COUNTRY: ("country", "country_ja"),
        YEAR: ("year",),
        CATEGORY: ("category",),
    }[gap]


def is_strong_pair(
    name: str | None,
    description: str | None,
    language: str,
    min_description_length: int = MIN_DESCRIPTION_LENGTH,
) -> bool:
    """
    Check whether a locale's (name, description) pair counts as filled.

    Both must be non-empty, the description must be long enough and not a
    known placeholder, and for non-Latin locales the base name (without its
    `#tags`) must contain at least one character of that script.
    """
    name = clean_text(name)
    description = clean_text(description)

    if not name or not description:
        return False
    if description in PLACEHOLDER_DESCRIPTIONS:
        return False
    if len(description) < min_description_length:
        return False
    return has_script(base_name(name), language)


def is_unknown_country(record: SpotRecord) -> bool:
    values = {v for v in (record.country, record.country_ja) if v}
    return bool(values) and values <= {UNKNOWN_COUNTRY, UNKNOWN_COUNTRY_JA}


def detect_gaps(
    record: SpotRecord,
    languages: tuple[str, ...] | list[str] = SUPPORTED_LANGUAGES,
    min_description_length: int = MIN_DESCRIPTION_LENGTH,
    retry_unknown_country: bool = False,
) -> set[str]:
    """
    Compute the set of missing or weak fields of a record.

    Args:
        record: Record to inspect
        languages: Locales to check
        min_description_length: Shortest description that counts as filled
        retry_unknown_country: Treat the "no country" sentinel as a gap

    Returns:
        Set of gap names (IMAGE, COUNTRY, YEAR, CATEGORY, locale_gap(L))
    """
    gaps = set()

    if not record.image_url:
        gaps.add(IMAGE)

    if not record.country and not record.country_ja:
        gaps.add(COUNTRY)
    elif retry_unknown_country and is_unknown_country(record):
        gaps.add(COUNTRY)

    # 0 is a real year
    if record.year is None:
        gaps.add(YEAR)

    if not record.category or record.category == DEFAULT_CATEGORY:
        gaps.add(CATEGORY)

    for language in languages:
        name, description = record.locale_pair(language)
        if not is_strong_pair(name, description, language, min_description_length):
            gaps.add(locale_gap(language))

    return gaps


def locale_gaps(gaps: set[str]) -> list[str]:
    """Languages with a locale gap, in supported-language order."""
    wanted = {gap_language(gap) for gap in gaps} - {None}
    return [lang for lang in SUPPORTED_LANGUAGES if lang in wanted]
