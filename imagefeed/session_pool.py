"""
Pool of curl-cffi sessions shared by feed and image downloads.

A curl-cffi Session is not safe to drive from two threads at once, and the
image cache runs distinct-URL downloads concurrently in worker threads. Each
download borrows its own session and hands it back afterwards; reusing a
warm handle skips the DNS/TCP/TLS setup against the Pixabay CDN.
"""

import threading
from collections import deque
from typing import Optional

from curl_cffi import requests as curl_requests

from .config import SESSION_POOL_CONFIG


class SessionPool:
    """Browser-profile-aware pool of curl-cffi sessions."""

    _PREWARM_TIMEOUT = (3, 2)

    def __init__(self, max_per_browser: int = 0):
        self._max_per_browser = max_per_browser or SESSION_POOL_CONFIG["max_per_browser"]
        # browser profile → deque[Session]
        self._buckets: dict[str, deque] = {}
        self._lock = threading.Lock()

    def _create_warm_session(self, browser: str) -> curl_requests.Session:
        session = curl_requests.Session(impersonate=browser)
        try:
            session.head(
                SESSION_POOL_CONFIG["prewarm_url"],
                timeout=self._PREWARM_TIMEOUT,
            )
            session.cookies.clear()
        except Exception as e:
            print(f"[SessionPool] Pre-warm failed ({browser}): {e}")
        return session

    def prewarm(self, count: int = 4, browser: str = "chrome131") -> None:
        """Pre-warm *count* sessions for a browser profile."""
        for _ in range(count):
            session = self._create_warm_session(browser)
            self.release(session, browser=browser)
        print(f"[SessionPool] Pre-warmed {count} sessions ({browser})")

    def acquire(self, browser: str = "chrome131") -> curl_requests.Session:
        with self._lock:
            bucket = self._buckets.get(browser)
            if bucket:
                session = bucket.popleft()
                if not bucket:
                    del self._buckets[browser]
                return session
        # Pool empty: plain session, TLS on first real request
        return curl_requests.Session(impersonate=browser)

    def release(self, session: curl_requests.Session, browser: str = "chrome131") -> None:
        session.cookies.clear()
        with self._lock:
            bucket = self._buckets.setdefault(browser, deque())
            if len(bucket) < self._max_per_browser:
                bucket.append(session)
                return
        session.close()

    def size(self, browser: Optional[str] = None) -> int:
        with self._lock:
            if browser is not None:
                return len(self._buckets.get(browser, ()))
            return sum(len(b) for b in self._buckets.values())

    def close_all(self) -> None:
        with self._lock:
            for bucket in self._buckets.values():
                while bucket:
                    bucket.pop().close()
            self._buckets.clear()
