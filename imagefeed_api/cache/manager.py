"""
ImageCacheManager: facade over the single-flight cache and the image CDN.

Provides:
- resolve(): URL → DecodedImage, one download per distinct URL
- the production fetch function (pooled curl-cffi session + Pillow decode)
- stats for the health endpoint
"""

import asyncio
from typing import Optional

from imagefeed.client import PixabayClient
from imagefeed.session_pool import SessionPool

from .coalescer import SingleFlightCache
from .config import CacheConfig
from .images import DecodedImage, decode_image
from .keys import RequestKey, normalize


class ImageCacheManager:
    def __init__(
        self,
        session_pool: Optional[SessionPool] = None,
        browser: str = "chrome131",
    ):
        self.session_pool = session_pool or SessionPool()
        self._browser = browser
        self.images = SingleFlightCache(self._fetch_image, name="images")

    async def connect(self) -> None:
        """Pre-warm CDN sessions. Non-fatal, a cold pool still works."""
        if CacheConfig.PREWARM_SESSIONS <= 0:
            return
        try:
            await asyncio.to_thread(
                self.session_pool.prewarm, CacheConfig.PREWARM_SESSIONS, self._browser,
            )
        except Exception as e:
            print(f"[cache] Session pre-warm failed: {e}")

    async def close(self) -> None:
        self.session_pool.close_all()

    # ── Fetch function ──────────────────────────────────────

    async def _fetch_image(self, key: RequestKey) -> DecodedImage:
        # Download and decode both block; run them off the event loop
        return await asyncio.to_thread(self._download_and_decode, key.url)

    def _download_and_decode(self, url: str) -> DecodedImage:
        session = self.session_pool.acquire(self._browser)
        client = PixabayClient(browser=self._browser, session=session)
        try:
            content, content_type, _ = client.download(
                url,
                timeout=(CacheConfig.FETCH_CONNECT_TIMEOUT, CacheConfig.FETCH_READ_TIMEOUT),
                max_bytes=CacheConfig.MAX_IMAGE_BYTES,
            )
        finally:
            client.close()
            self.session_pool.release(session, browser=self._browser)
        return decode_image(content, content_type, url)

    # ── Public ──────────────────────────────────────────────

    async def resolve(self, url: str) -> tuple[DecodedImage, str]:
        """
        Resolve an image URL through the single-flight cache.

        Returns:
            (image, cache_layer) where cache_layer is "memory", "coalesced" or "live"
        """
        return await self.images.resolve_with_layer(normalize(url))

    def stats(self) -> dict:
        return {
            **self.images.stats(),
            "pooled_sessions": self.session_pool.size(),
        }
