"""
Configuration management for the spot enrichment pipeline.

Uses pydantic-settings for type-safe configuration with environment variable support.
Settings are read once at startup and are immutable for the duration of a run.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from spot_pipeline.errors import FatalConfigError


# =============================================================================
# Fixed Vocabulary
# =============================================================================

# Every locale the spots table carries a name_/description_ pair for
SUPPORTED_LANGUAGES = ("ja", "en", "zh", "es", "fr")

LANGUAGE_NAMES = {
    "ja": "Japanese",
    "en": "English",
    "zh": "Chinese (Simplified)",
    "es": "Spanish",
    "fr": "French",
}

DEFAULT_CATEGORY = "landmark"

SPOT_CATEGORIES = [
    "landmark",
    "nature",
    "history",
    "modern",
    "science",
    "art",
]

# Descriptions written by importers that carry no information
PLACEHOLDER_DESCRIPTIONS = {"World Heritage Site"}

# Values stored when reverse geocoding finds no country (open ocean etc.)
UNKNOWN_COUNTRY = "Other"
UNKNOWN_COUNTRY_JA = "その他"

# Enrichment steps, in the order they are queued for each chunk
STEPS = ("year", "category", "locales", "country", "image")


class DatabaseSettings(BaseSettings):
    """Database connection settings."""

    model_config = SettingsConfigDict(
        env_prefix="POSTGRES_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    user: str = "spots"
    password: str = ""
    host: str = "localhost"
    port: int = 5432
    db: str = "spots"

    @property
    def url(self) -> str:
        """Construct database URL."""
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.db}"


class InferenceSettings(BaseSettings):
    """Text-inference provider settings (classification, translation, years)."""

    model_config = SettingsConfigDict(
        env_prefix="INFERENCE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    anthropic_api_key: str = ""
    model: str = "claude-haiku-4-5-20251001"
    max_tokens: int = 4096
    delay_seconds: float = 4.0


class GeocodingSettings(BaseSettings):
    """Reverse geocoding (Mapbox) settings."""

    model_config = SettingsConfigDict(
        env_prefix="MAPBOX_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    access_token: str = ""
    delay_seconds: float = 0.1
    search_locale: str = "en"   # written to `country`
    display_locale: str = "ja"  # written to `country_ja`


class ImageSettings(BaseSettings):
    """Image lookup settings."""

    model_config = SettingsConfigDict(
        env_prefix="IMAGES_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    pixabay_api_key: str = ""  # Optional: Pixabay links are skipped without it
    wikipedia_delay_seconds: float = 0.2
    pixabay_delay_seconds: float = 0.2
    thumbnail_size: int = 600
    localized_query_locale: str = "ja"


class EnrichmentSettings(BaseSettings):
    """Scan, gap detection and retry settings."""

    model_config = SettingsConfigDict(
        env_prefix="ENRICH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Scanning
    page_size: int = 1000  # Store-side cap on rows per request
    batch_size: int = 10   # Records per batched inference call

    # Gap heuristics
    languages: str = ",".join(SUPPORTED_LANGUAGES)
    min_description_length: int = 20
    retry_unknown_country: bool = False

    # Rate limiting
    rate_limit_cooldown: float = 60.0  # seconds
    max_rate_limit_attempts: int = 5

    # Logging
    log_level: str = "INFO"

    # HTTP settings
    http_timeout: int = 30  # seconds
    http_max_retries: int = 3
    http_retry_delay: float = 1.0  # seconds

    @property
    def language_list(self) -> list[str]:
        """Parse the configured locale set into a list."""
        return [lang.strip() for lang in self.languages.split(",") if lang.strip()]


class Settings(BaseSettings):
    """Main settings class that combines all settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Sub-settings
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    inference: InferenceSettings = Field(default_factory=InferenceSettings)
    geocoding: GeocodingSettings = Field(default_factory=GeocodingSettings)
    images: ImageSettings = Field(default_factory=ImageSettings)
    enrichment: EnrichmentSettings = Field(default_factory=EnrichmentSettings)

    # Full SQLAlchemy URL, overrides the POSTGRES_* settings when set
    database_url: Optional[str] = None

    @property
    def resolved_database_url(self) -> str | None:
        if self.database_url:
            return self.database_url
        if self.database.password:
            return self.database.url
        return None


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


def require_settings(settings: Settings, steps: tuple[str, ...] = STEPS) -> None:
    """
    Validate that everything the selected steps need is configured.

    Raises:
        FatalConfigError: listing every missing setting
    """
    missing = []

    if not settings.resolved_database_url:
        missing.append("DATABASE_URL (or POSTGRES_PASSWORD)")

    if {"year", "category", "locales"} & set(steps) and not settings.inference.anthropic_api_key:
        missing.append("INFERENCE_ANTHROPIC_API_KEY")

    if "country" in steps and not settings.geocoding.access_token:
        missing.append("MAPBOX_ACCESS_TOKEN")

    unknown_steps = [step for step in steps if step not in STEPS]
    if unknown_steps:
        missing.append(f"valid steps (unknown: {', '.join(unknown_steps)})")

    unsupported = [
        lang for lang in settings.enrichment.language_list
        if lang not in SUPPORTED_LANGUAGES
    ]
    if unsupported:
        missing.append(f"ENRICH_LANGUAGES (unsupported: {', '.join(unsupported)})")

    if missing:
        raise FatalConfigError(f"Missing or invalid configuration: {'; '.join(missing)}")
