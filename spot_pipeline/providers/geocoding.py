"""
Reverse geocoding adapter (Mapbox).

Coordinates in, country name out. One request returns the country in both
the search locale (`country`) and the display locale (`country_ja`).
"No feature" (open ocean, disputed areas) is a valid answer, not an error.
"""

from dataclasses import dataclass

import httpx
from loguru import logger

from spot_pipeline.errors import ParseError, RateLimited, TransientProviderError
from spot_pipeline.rate_control import RateController
from spot_pipeline.utils.http import HTTPError, HttpFetcher, RateLimitError

MAPBOX_GEOCODING_URL = "https://api.mapbox.com/geocoding/v5/mapbox.places/{lon},{lat}.json"


@dataclass
class CountryNames:
    """Country name in the search and display locales."""
    search: str
    display: str


class MapboxGeocoder:
    """Reverse geocoder limited to the `country` feature type."""

    provider = "mapbox"

    def __init__(
        self,
        http: HttpFetcher,
        access_token: str,
        rate: RateController,
        search_locale: str = "en",
        display_locale: str = "ja",
    ):
        self.http = http
        self.access_token = access_token
        self.rate = rate
        self.search_locale = search_locale
        self.display_locale = display_locale

    def reverse_country(self, lat: float, lon: float) -> CountryNames | None:
        """
        Look up the country containing a point.

        Returns:
            CountryNames, or None when the point is in no country

        Raises:
            RateLimited, TransientProviderError, ParseError
        """
        locales = [self.search_locale]
        if self.display_locale != self.search_locale:
            locales.append(self.display_locale)

        params = {
            "types": "country",
            "language": ",".join(locales),
            "access_token": self.access_token,
        }

        self.rate.throttle(self.provider)
        try:
            response = self.http.get(MAPBOX_GEOCODING_URL.format(lon=lon, lat=lat), params=params)
        except RateLimitError as e:
            raise RateLimited(str(e), provider=self.provider, retry_after=e.retry_after) from e
        except (HTTPError, httpx.HTTPError) as e:
            raise TransientProviderError(f"Mapbox request failed: {e}", provider=self.provider) from e

        try:
            data = response.json()
        except ValueError as e:
            raise ParseError(f"Mapbox returned non-JSON body: {e}", provider=self.provider) from e

        features = data.get("features") or []
        if not features:
            logger.debug(f"No country at ({lat}, {lon})")
            return None

        feature = features[0]
        search = feature.get(f"text_{self.search_locale}") or feature.get("text")
        if not search:
            raise ParseError("Mapbox feature has no text", provider=self.provider)
        display = feature.get(f"text_{self.display_locale}") or search

        return CountryNames(search=search, display=display)
