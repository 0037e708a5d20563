"""
imagefeed Feed Session
Pagination state for one image feed: current images, next page, fetch status.

All blocking client calls run in worker threads with a session borrowed from
the pool; feed mutations are serialized by an asyncio.Lock.
"""

import asyncio
from typing import Optional, List, Callable, Any

from .client import PixabayClient
from .config import RANDOM_CATEGORIES
from .endpoints.images import (
    ImageHit,
    get_feed_page,
    get_category_images,
    filtered_images,
)
from .errors import FetchError, TransportError
from .session_pool import SessionPool

BAD_STATUS_MESSAGE = "Failed to hit endpoint with bad status code"

# User name preferred by the random feed ordering
RANDOM_SEARCH_KEYWORD: Optional[str] = "unknown"


class FeedSession:
    def __init__(
        self,
        session_pool: Optional[SessionPool] = None,
        api_key: Optional[str] = None,
        browser: str = "chrome131",
    ):
        self.images: List[ImageHit] = []
        self.page = 1
        self.is_fetching = False
        self.error_message = ""
        self._session_pool = session_pool
        self._api_key = api_key
        self._browser = browser
        self._lock = asyncio.Lock()

    async def _call(self, fn: Callable[..., Any], *args: Any) -> Any:
        """Run an endpoint function in a worker thread with a pooled session."""
        session = self._session_pool.acquire(self._browser) if self._session_pool else None
        client = PixabayClient(api_key=self._api_key, browser=self._browser, session=session)
        try:
            return await asyncio.to_thread(fn, *args, client=client)
        finally:
            client.close()
            if session and self._session_pool:
                self._session_pool.release(session, browser=self._browser)

    def _record_failure(self, e: FetchError) -> None:
        if isinstance(e, TransportError) and e.status_code is not None:
            self.error_message = BAD_STATUS_MESSAGE
        else:
            self.error_message = str(e)
        print(f"[feed] Failed to reach endpoint: {e}")

    # ── Paging ──────────────────────────────────────────────

    async def fetch_next_page(self) -> List[ImageHit]:
        """
        Replace the current images with the next feed page.

        An empty page (or Pixabay's 400 for an out-of-range page) means the
        feed is exhausted: paging restarts at 1 and fetches once more.
        """
        async with self._lock:
            return await self._fetch_page()

    async def _fetch_page(self, wrapped: bool = False) -> List[ImageHit]:
        self.is_fetching = True
        try:
            images, _ = await self._call(get_feed_page, self.page)
        except TransportError as e:
            if e.status_code == 400 and self.page > 1 and not wrapped:
                images = []
            else:
                self._record_failure(e)
                raise
        except FetchError as e:
            self._record_failure(e)
            raise
        finally:
            self.is_fetching = False

        self.images = images
        self.error_message = ""

        if not images:
            if wrapped or self.page == 1:
                return images
            self.page = 1
            return await self._fetch_page(wrapped=True)

        self.page += 1
        return images

    async def refresh(self) -> List[ImageHit]:
        async with self._lock:
            self.images = []
            return await self._fetch_page()

    async def fetch_random(self) -> List[ImageHit]:
        """
        Mix a few images from each random category, ordered by user name.

        A failed category contributes nothing and leaves its error in
        `error_message`; only a failure of every category raises.
        """
        async with self._lock:
            self.images = []
            self.is_fetching = True
            try:
                results = await asyncio.gather(
                    *(self._call(get_category_images, category)
                      for category in RANDOM_CATEGORIES),
                    return_exceptions=True,
                )
            finally:
                self.is_fetching = False

            images: List[ImageHit] = []
            failures: List[FetchError] = []
            for result in results:
                if isinstance(result, FetchError):
                    self._record_failure(result)
                    failures.append(result)
                elif isinstance(result, BaseException):
                    raise result
                else:
                    batch, _ = result
                    images.extend(batch)

            if failures and len(failures) == len(results):
                raise failures[0]
            if not failures:
                self.error_message = ""

            keyword = RANDOM_SEARCH_KEYWORD
            self.images = filtered_images(
                images,
                lambda img: keyword is not None and img.user == keyword,
            )
            return self.images

    def get_image(self, image_id: int) -> Optional[ImageHit]:
        return next((img for img in self.images if img.id == image_id), None)
