# miles/services/image_proxy.py
"""
Image proxy cache — fetches alert images (motion recaps, snapshots) on behalf
of the dashboard so origin URLs and their tokens never reach the browser.

Entries are keyed by the exact URL string and go stale after the TTL; the
staleness check runs lazily on the next read. No size bound, no conditional
requests.
"""

import time
from dataclasses import dataclass
from typing import Callable, Optional
from urllib.parse import urlsplit

import httpx

from miles.config import settings
from miles.utils.logger import get_logger

logger = get_logger(__name__)

ALLOWED_SCHEMES = ("http", "https")
DEFAULT_CONTENT_TYPE = "application/octet-stream"


class InvalidImageUrl(ValueError):
    """Missing URL, unsupported scheme, or unparseable URL."""


class UpstreamFetchError(Exception):
    """Origin unreachable or answered with a non-2xx status."""


@dataclass
class CachedImage:
    body: bytes
    content_type: str
    fetched_at: float


def validate_image_url(url: Optional[str]) -> str:
    if not url:
        raise InvalidImageUrl("url required")
    try:
        parts = urlsplit(url)
    except ValueError:
        raise InvalidImageUrl("invalid url")
    if parts.scheme.lower() not in ALLOWED_SCHEMES or not parts.netloc:
        raise InvalidImageUrl("invalid url")
    return url


class ImageCache:
    def __init__(self, ttl_seconds: float = 300.0, timeout: float = 10.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.timeout = timeout
        self._transport = transport
        self._clock = clock
        self._entries: dict[str, CachedImage] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    async def get(self, url: Optional[str]) -> CachedImage:
        url = validate_image_url(url)
        now = self._clock()

        hit = self._entries.get(url)
        if hit is not None and now - hit.fetched_at < self.ttl_seconds:
            logger.debug(f"[IMG] Cache hit {url}")
            return hit

        entry = await self._fetch(url, now)
        self._entries[url] = entry
        return entry

    async def _fetch(self, url: str, now: float) -> CachedImage:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport,
                                         follow_redirects=True) as client:
                response = await client.get(url)
        except httpx.HTTPError as e:
            logger.warning(f"[IMG] Fetch failed for {url}: {e}")
            raise UpstreamFetchError("fetch failed") from e

        if not response.is_success:
            logger.warning(f"[IMG] {url} returned HTTP {response.status_code}")
            raise UpstreamFetchError(f"origin returned HTTP {response.status_code}")

        content_type = response.headers.get("content-type") or DEFAULT_CONTENT_TYPE
        logger.info(f"[IMG] Cached {url} ({len(response.content)} bytes, {content_type})")
        return CachedImage(body=response.content, content_type=content_type, fetched_at=now)


image_cache = ImageCache(
    ttl_seconds=settings.IMAGE_CACHE_TTL_SECONDS,
    timeout=settings.IMAGE_FETCH_TIMEOUT_SECONDS,
)
