# tests/test_image_proxy.py
"""Tests for the image proxy cache and GET /api/img."""

import httpx
import pytest
from miles.routers import images
from miles.services.image_proxy import (
    ImageCache,
    InvalidImageUrl,
    UpstreamFetchError,
    validate_image_url,
)

PNG = b"\x89PNG\r\n\x1a\nfake"


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def origin(status=200, body=PNG, content_type="image/png"):
    """MockTransport that records every URL it serves."""
    calls = []

    def handler(request: httpx.Request):
        calls.append(str(request.url))
        headers = {"content-type": content_type} if content_type else {}
        return httpx.Response(status, content=body, headers=headers)

    return httpx.MockTransport(handler), calls


class TestValidateUrl:
    """Only absolute http(s) URLs are proxied."""

    @pytest.mark.parametrize("url", ["http://a.example/x.png", "https://a.example/x.png?sig=1"])
    def test_http_and_https_accepted(self, url):
        assert validate_image_url(url) == url

    @pytest.mark.parametrize("url", [None, "", "ftp://a.example/x", "file:///etc/passwd", "javascript:alert(1)",
                                     "not a url", "https://"])
    def test_rejected(self, url):
        with pytest.raises(InvalidImageUrl):
            validate_image_url(url)


class TestImageCache:
    """TTL cache in front of the origin fetch."""

    @pytest.mark.asyncio
    async def test_second_read_within_ttl_hits_cache(self):
        transport, calls = origin()
        clock = FakeClock()
        cache = ImageCache(ttl_seconds=300, transport=transport, clock=clock)

        first = await cache.get("https://img.example/a.png")
        clock.now += 299
        second = await cache.get("https://img.example/a.png")

        assert len(calls) == 1
        assert first.body == second.body == PNG
        assert second.content_type == "image/png"

    @pytest.mark.asyncio
    async def test_stale_entry_refetched(self):
        transport, calls = origin()
        clock = FakeClock()
        cache = ImageCache(ttl_seconds=300, transport=transport, clock=clock)

        await cache.get("https://img.example/a.png")
        clock.now += 301
        await cache.get("https://img.example/a.png")

        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_key_is_exact_url(self):
        transport, calls = origin()
        cache = ImageCache(transport=transport, clock=FakeClock())

        await cache.get("https://img.example/a.png")
        await cache.get("https://img.example/a.png?v=2")

        assert len(calls) == 2
        assert len(cache) == 2

    @pytest.mark.asyncio
    async def test_origin_error_not_cached(self):
        transport, calls = origin(status=404)
        cache = ImageCache(transport=transport, clock=FakeClock())

        for _ in range(2):
            with pytest.raises(UpstreamFetchError):
                await cache.get("https://img.example/missing.png")

        assert len(calls) == 2
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_transport_failure_is_upstream_error(self):
        def boom(request):
            raise httpx.ConnectError("refused", request=request)

        cache = ImageCache(transport=httpx.MockTransport(boom), clock=FakeClock())
        with pytest.raises(UpstreamFetchError):
            await cache.get("https://img.example/a.png")

    @pytest.mark.asyncio
    async def test_missing_content_type_defaults(self):
        transport, _ = origin(content_type=None)
        cache = ImageCache(transport=transport, clock=FakeClock())
        image = await cache.get("https://img.example/a.bin")
        assert image.content_type == "application/octet-stream"


class TestImageEndpoint:
    """GET /api/img status codes and headers."""

    def test_serves_and_caches(self, client, monkeypatch):
        transport, calls = origin()
        monkeypatch.setattr(images, "image_cache", ImageCache(transport=transport, clock=FakeClock()))

        for _ in range(2):
            resp = client.get("/api/img", params={"url": "https://img.example/a.png"})
            assert resp.status_code == 200
            assert resp.content == PNG
            assert resp.headers["content-type"] == "image/png"
            assert resp.headers["cache-control"] == "public, max-age=60"

        assert len(calls) == 1

    def test_missing_url_400(self, client):
        assert client.get("/api/img").status_code == 400

    def test_bad_scheme_400(self, client):
        assert client.get("/api/img", params={"url": "ftp://img.example/a.png"}).status_code == 400

    def test_upstream_failure_502(self, client, monkeypatch):
        transport, _ = origin(status=500)
        monkeypatch.setattr(images, "image_cache", ImageCache(transport=transport, clock=FakeClock()))
        assert client.get("/api/img", params={"url": "https://img.example/a.png"}).status_code == 502
