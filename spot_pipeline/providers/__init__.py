"""
Provider adapters.

One adapter per external capability, each with explicit failure modes:
RateLimited, TransientProviderError and ParseError. "No result" is
returned as None, never raised.
"""

from spot_pipeline.providers.geocoding import CountryNames, MapboxGeocoder
from spot_pipeline.providers.images import (
    ImageHit,
    ImageLink,
    ImageLookup,
    PixabaySource,
    WikipediaThumbnailSource,
    build_image_lookup,
)
from spot_pipeline.providers.inference import TextInferenceAdapter

__all__ = [
    "CountryNames",
    "MapboxGeocoder",
    "ImageHit",
    "ImageLink",
    "ImageLookup",
    "PixabaySource",
    "WikipediaThumbnailSource",
    "build_image_lookup",
    "TextInferenceAdapter",
]
