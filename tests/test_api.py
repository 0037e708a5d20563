"""HTTP surface tests. Components are injected directly; the lifespan never runs."""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

import imagefeed.feed_session as feed_session
import imagefeed_api.main as main
from imagefeed.errors import TransportError
from imagefeed.feed_session import BAD_STATUS_MESSAGE, FeedSession
from imagefeed.tag_counter import InMemoryTagCounter
from imagefeed_api.cache import ImageCacheManager, SingleFlightCache, decode_image

from conftest import make_image


@pytest.fixture
def downloads():
    return []


@pytest.fixture
def client(monkeypatch, png_bytes, downloads):
    feed = FeedSession()
    feed.images = [make_image(1, "alice"), make_image(2, "bob")]
    feed.page = 2

    async def fake_fetch(key):
        downloads.append(key.url)
        if "missing" in key.url:
            raise TransportError("Bad status code 404", url=key.url, status_code=404)
        return decode_image(png_bytes, "image/png", key.url)

    pool = MagicMock()
    pool.size.return_value = 0
    mgr = ImageCacheManager(session_pool=pool)
    mgr.images = SingleFlightCache(fake_fetch)

    monkeypatch.setattr(main, "feed", feed)
    monkeypatch.setattr(main, "tag_counter", InMemoryTagCounter())
    monkeypatch.setattr(main, "cache_mgr", mgr)
    return TestClient(main.app)


class TestStatus:
    def test_root(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert resp.json()["status"] == "running"

    def test_health(self, client):
        body = client.get("/health").json()

        assert body["status"] == "healthy"
        assert body["tag_counter"] == "memory"
        assert body["feed_images"] == 2
        assert body["image_cache"]["resolved"] == 0
        assert body["image_cache"]["pooled_sessions"] == 0

    def test_uninitialized_components(self, client, monkeypatch):
        monkeypatch.setattr(main, "feed", None)

        assert client.get("/v1/feed").status_code == 503
        assert client.get("/v1/images/1").status_code == 503


class TestFeed:
    def test_current_page(self, client):
        body = client.get("/v1/feed").json()

        assert body["success"] is True
        assert [img["id"] for img in body["data"]] == [1, 2]
        assert body["data"][0]["tag_count"] == 0
        assert body["meta"]["count"] == 2
        assert body["meta"]["next_page"] == 2

    def test_next_page(self, client, monkeypatch):
        monkeypatch.setattr(
            feed_session,
            "get_feed_page",
            lambda page, client, per_page=None: ([make_image(10 + page)], 1.0),
        )

        body = client.post("/v1/feed/next").json()

        assert [img["id"] for img in body["data"]] == [12]
        assert body["meta"]["next_page"] == 3

    def test_next_page_bad_status(self, client, monkeypatch):
        def fail(page, client, per_page=None):
            raise TransportError("Bad status code 500", status_code=500)

        monkeypatch.setattr(feed_session, "get_feed_page", fail)

        resp = client.post("/v1/feed/next")

        assert resp.status_code == 502
        assert resp.json()["detail"] == BAD_STATUS_MESSAGE
        assert client.get("/health").json()["feed_error"] == BAD_STATUS_MESSAGE


    def test_random_keeps_healthy_categories(self, client, monkeypatch):
        def categories(category, client, per_page=3):
            if category == "education":
                raise TransportError("Bad status code 503", status_code=503)
            return [make_image(len(category), category)], 1.0

        monkeypatch.setattr(feed_session, "get_category_images", categories)

        resp = client.post("/v1/feed/random")

        assert resp.status_code == 200
        assert [img["user"] for img in resp.json()["data"]] == ["buildings", "nature"]


class TestImages:
    def test_metadata(self, client):
        body = client.get("/v1/images/2").json()
        assert body["data"]["user"] == "bob"
        assert body["data"]["tag_count"] == 0

    def test_unknown_image(self, client):
        assert client.get("/v1/images/999").status_code == 404
        assert client.get("/v1/images/999/raw").status_code == 404

    def test_raw_is_downloaded_once(self, client, png_bytes, downloads):
        first = client.get("/v1/images/1/raw")
        second = client.get("/v1/images/1/raw")

        assert first.status_code == 200
        assert first.content == png_bytes
        assert first.headers["content-type"] == "image/png"
        assert first.headers["x-cache-layer"] == "live"
        assert first.headers["x-cache-hit"] == "0"
        assert first.headers["x-image-size"] == "4x3"
        assert first.headers["server-timing"].startswith("image_cache;dur=")
        assert second.headers["x-cache-layer"] == "memory"
        assert second.content == png_bytes
        assert downloads == ["https://cdn.pixabay.com/photo/1_1280.jpg"]


class TestProxy:
    def test_rejects_non_http_urls(self, client, downloads):
        resp = client.get("/v1/proxy", params={"url": "file:///etc/passwd"})
        assert resp.status_code == 400
        assert downloads == []

    def test_equivalent_urls_share_the_cache(self, client, downloads):
        client.get("/v1/proxy", params={"url": "https://CDN.example.com:443/a.png"})
        resp = client.get("/v1/proxy", params={"url": "https://cdn.example.com/a.png#x"})

        assert resp.headers["x-cache-layer"] == "memory"
        assert downloads == ["https://cdn.example.com/a.png"]

    def test_fetch_failure(self, client, downloads):
        resp = client.get("/v1/proxy", params={"url": "https://cdn.example.com/missing.png"})
        again = client.get("/v1/proxy", params={"url": "https://cdn.example.com/missing.png"})

        assert resp.status_code == 502
        assert again.status_code == 502
        assert len(downloads) == 2


class TestTagBurst:
    def test_default_burst(self, client):
        body = client.post("/v1/images/1/tags/burst").json()

        assert body["data"] == {"id": 1, "user": "alice", "tag_count": 2000}
        assert client.get("/v1/images/1").json()["data"]["tag_count"] == 2000

    def test_custom_burst(self, client):
        body = client.post(
            "/v1/images/2/tags/burst", params={"increments": 5, "decrements": 7}
        ).json()
        assert body["data"]["tag_count"] == -2

    def test_rejects_negative_counts(self, client):
        resp = client.post("/v1/images/1/tags/burst", params={"increments": -1})
        assert resp.status_code == 422

    def test_unknown_image(self, client):
        assert client.post("/v1/images/999/tags/burst").status_code == 404
