"""
Image lookup with an ordered fallback chain.

Chain (first hit wins):
1. Wikipedia page thumbnail for the English base name
2. Pixabay stock photo for the English base name
3. Pixabay stock photo for the localized (Japanese) base name

Exhausting the chain means "no image", which is not an error. A rate limit
from any link aborts the chain so the whole lookup is retried; other
failures of one link are logged and the chain moves on.
"""

from dataclasses import dataclass
from typing import Callable, Protocol

import httpx
from loguru import logger

from spot_pipeline.errors import ParseError, ProviderError, RateLimited, TransientProviderError
from spot_pipeline.rate_control import RateController
from spot_pipeline.records import SpotRecord
from spot_pipeline.utils.http import HTTPError, HttpFetcher, RateLimitError

WIKIPEDIA_API_URL = "https://{lang}.wikipedia.org/w/api.php"
PIXABAY_API_URL = "https://pixabay.com/api/"


class ImageSource(Protocol):
    """One independent image provider: query in, thumbnail URL or None out."""

    name: str

    def lookup(self, query: str) -> str | None:
        ...


@dataclass
class ImageHit:
    url: str
    source: str


@dataclass
class ImageLink:
    """A source plus the way a record is turned into its query."""
    source: ImageSource
    query: Callable[[SpotRecord], str]
    label: str


class _HttpImageSource:
    """Shared request/error mapping for HTTP image sources."""

    name = "http"
    provider = "http"

    def __init__(self, http: HttpFetcher, rate: RateController):
        self.http = http
        self.rate = rate

    def _get_json(self, url: str, params: dict) -> dict:
        self.rate.throttle(self.provider)
        try:
            response = self.http.get(url, params=params)
        except RateLimitError as e:
            raise RateLimited(str(e), provider=self.provider, retry_after=e.retry_after) from e
        except (HTTPError, httpx.HTTPError) as e:
            raise TransientProviderError(f"{self.name} request failed: {e}", provider=self.provider) from e

        try:
            return response.json()
        except ValueError as e:
            raise ParseError(f"{self.name} returned non-JSON body", provider=self.provider) from e


class WikipediaThumbnailSource(_HttpImageSource):
    """Lead image of the Wikipedia article whose title matches the query."""

    provider = "wikipedia"

    def __init__(self, http: HttpFetcher, rate: RateController, size: int = 600, lang: str = "en"):
        super().__init__(http, rate)
        self.size = size
        self.lang = lang
        self.name = f"wikipedia-{lang}"

    def lookup(self, query: str) -> str | None:
        if not query:
            return None

        data = self._get_json(
            WIKIPEDIA_API_URL.format(lang=self.lang),
            {
                "action": "query",
                "titles": query,
                "prop": "pageimages",
                "format": "json",
                "pithumbsize": self.size,
                "redirects": 1,
            },
        )

        pages = (data.get("query") or {}).get("pages") or {}
        for page_id, page in pages.items():
            if page_id == "-1":
                continue
            thumbnail = page.get("thumbnail") or {}
            if thumbnail.get("source"):
                return thumbnail["source"]
        return None


class PixabaySource(_HttpImageSource):
    """First Pixabay travel photo for the query."""

    provider = "pixabay"

    def __init__(self, http: HttpFetcher, rate: RateController, api_key: str, lang: str = "en"):
        super().__init__(http, rate)
        self.api_key = api_key
        self.lang = lang
        self.name = f"pixabay-{lang}"

    def lookup(self, query: str) -> str | None:
        if not query:
            return None

        data = self._get_json(
            PIXABAY_API_URL,
            {
                "key": self.api_key,
                "q": query,
                "lang": self.lang,
                "image_type": "photo",
                "category": "travel",
                "per_page": 3,
            },
        )

        hits = data.get("hits") or []
        if hits and hits[0].get("webformatURL"):
            return hits[0]["webformatURL"]
        return None


class ImageLookup:
    """Try each link in order and return the first non-empty hit."""

    def __init__(self, links: list[ImageLink]):
        self.links = links

    def find(self, record: SpotRecord) -> ImageHit | None:
        """
        Raises:
            RateLimited: a link was rate limited; retry the whole lookup
        """
        for link in self.links:
            query = link.query(record)
            if not query:
                continue

            try:
                url = link.source.lookup(query)
            except RateLimited:
                raise
            except ProviderError as e:
                logger.warning(f"Image source {link.label} failed for spot {record.id}: {e}")
                continue

            if url:
                logger.debug(f"Image for spot {record.id} from {link.label}")
                return ImageHit(url=url, source=link.label)

        return None


def build_image_lookup(
    http: HttpFetcher,
    rate: RateController,
    pixabay_api_key: str = "",
    thumbnail_size: int = 600,
    localized_locale: str = "ja",
) -> ImageLookup:
    """Standard chain: Wikipedia (en), Pixabay (en), Pixabay (localized)."""
    links = [
        ImageLink(
            source=WikipediaThumbnailSource(http, rate, size=thumbnail_size),
            query=lambda r: r.search_name,
            label="wikipedia",
        ),
    ]

    if pixabay_api_key:
        links.append(ImageLink(
            source=PixabaySource(http, rate, pixabay_api_key, lang="en"),
            query=lambda r: r.search_name,
            label="pixabay-en",
        ))
        links.append(ImageLink(
            source=PixabaySource(http, rate, pixabay_api_key, lang=localized_locale),
            query=lambda r: r.localized_name(localized_locale),
            label=f"pixabay-{localized_locale}",
        ))
    else:
        logger.info("No Pixabay API key configured, image chain uses Wikipedia only")

    return ImageLookup(links)
