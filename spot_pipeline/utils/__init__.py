"""Utility modules for the enrichment pipeline."""

from spot_pipeline.utils.geo import is_valid_coordinates
from spot_pipeline.utils.http import HTTPError, HttpFetcher, RateLimitError
from spot_pipeline.utils.logging import setup_logging
from spot_pipeline.utils.text import (
    base_name,
    clean_text,
    compose_name,
    has_script,
    name_tags,
)

__all__ = [
    # HTTP utilities
    "HttpFetcher",
    "HTTPError",
    "RateLimitError",
    # Logging
    "setup_logging",
    # Geographic utilities
    "is_valid_coordinates",
    # Text utilities
    "base_name",
    "name_tags",
    "compose_name",
    "has_script",
    "clean_text",
]
