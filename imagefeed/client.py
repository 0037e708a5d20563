"""
imagefeed HTTP Client
curl-cffi client for the Pixabay search API and its image CDN.

- Chrome TLS fingerprint via curl-cffi impersonation
- Optional externally owned (pooled) session for connection reuse
- Aggressive timeouts for fail-fast behavior
- Every failure is raised as TransportError / DecodeError, never swallowed
"""

import random
import time
from typing import Optional, Dict, Any, Tuple

import orjson
from curl_cffi import requests
from curl_cffi.requests.exceptions import RequestException

from .config import (
    PIXABAY_BASE_URL,
    FEED_QUERY,
    BROWSER_PROFILES,
    IMAGE_HEADERS,
    get_pixabay_api_key,
)
from .debug import RequestDebug, SpeedDebugger
from .errors import TransportError, DecodeError

# ── Constants ───────────────────────────────────────────────
_CONNECT_TIMEOUT = 5
_READ_TIMEOUT = 10
_DEFAULT_TIMEOUT = (_CONNECT_TIMEOUT, _READ_TIMEOUT)

_API_HEADERS = {
    "accept": "application/json",
    "accept-language": "en-US,en;q=0.9",
    "connection": "keep-alive",
}


class PixabayClient:
    """
    Pixabay API client.

    The session is created lazily unless one is injected; an injected session
    is owned by the caller (usually a SessionPool) and close() leaves it open.
    """
    __slots__ = ('_api_key', '_browser', '_session', '_external_session')

    def __init__(
        self,
        api_key: Optional[str] = None,
        browser: str = "chrome131",
        session: Optional[requests.Session] = None,
    ):
        self._api_key = api_key if api_key is not None else get_pixabay_api_key()
        self._browser = browser
        self._session = session
        self._external_session = session is not None

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session(impersonate=self._browser)
        return self._session

    def _get(
        self,
        url: str,
        rd: Optional[RequestDebug],
        stream: bool = False,
        **kwargs,
    ) -> Tuple[Any, float]:
        if rd:
            rd.phase("network request")

        start_time = time.perf_counter()
        try:
            response = self.session.get(url, stream=stream, **kwargs)
        except RequestException as e:
            raise TransportError(f"Request failed: {e}", url=url) from e
        elapsed_ms = (time.perf_counter() - start_time) * 1000

        # Cookies are HTTP-level; the warm TLS connection survives clearing them
        self.session.cookies.clear()

        if rd:
            rd.status_code = response.status_code
            if not stream:
                rd.response_size = len(response.content) if response.content else 0

        if response.status_code >= 300:
            if stream:
                response.close()
            raise TransportError(
                f"Bad status code {response.status_code}",
                url=url,
                status_code=response.status_code,
            )
        return response, elapsed_ms

    def search_images(
        self,
        params: Optional[Dict[str, Any]] = None,
        timeout: Tuple[float, float] = _DEFAULT_TIMEOUT,
        debug_obj: Optional[RequestDebug] = None,
    ) -> Tuple[Dict[str, Any], float]:
        """
        Query the Pixabay search endpoint.

        `params` are layered over the default feed query, so callers only pass
        what differs (page, category, per_page).

        Returns:
            Tuple of (response_data, response_time_ms)
        """
        rd = debug_obj
        if rd:
            rd.phase("build params")

        query = {"key": self._api_key, **FEED_QUERY}
        if params:
            query.update({k: str(v) for k, v in params.items()})

        response, elapsed_ms = self._get(
            PIXABAY_BASE_URL,
            rd,
            params=query,
            headers=_API_HEADERS,
            timeout=timeout,
        )

        if rd:
            rd.phase("parse response")
        try:
            data = orjson.loads(response.content)
        except orjson.JSONDecodeError as e:
            raise DecodeError(f"Feed response is not JSON: {e}", url=PIXABAY_BASE_URL) from e
        if not isinstance(data, dict):
            raise DecodeError("Unexpected feed response shape", url=PIXABAY_BASE_URL)

        if rd:
            rd.end()
        return data, elapsed_ms

    def download(
        self,
        url: str,
        timeout: Tuple[float, float] = _DEFAULT_TIMEOUT,
        max_bytes: int = 0,
        debug_obj: Optional[RequestDebug] = None,
    ) -> Tuple[bytes, str, float]:
        """
        Download raw bytes (an image) from `url`.

        The body is streamed. With `max_bytes` set, a larger declared
        content-length is rejected before any body is read, and the stream
        is abandoned as soon as it passes the limit.

        Returns:
            Tuple of (content, content_type, response_time_ms)
        """
        start_time = time.perf_counter()
        response, _ = self._get(
            url, debug_obj, stream=True, headers=IMAGE_HEADERS, timeout=timeout,
        )
        try:
            declared = str(response.headers.get("content-length") or "")
            if max_bytes and declared.isdigit() and int(declared) > max_bytes:
                raise TransportError(
                    f"Response too large ({int(declared):,} bytes declared)", url=url,
                )

            body = bytearray()
            try:
                for chunk in response.iter_content():
                    body.extend(chunk)
                    if max_bytes and len(body) > max_bytes:
                        raise TransportError(
                            f"Response too large (over {max_bytes:,} bytes)", url=url,
                        )
            except RequestException as e:
                raise TransportError(f"Body read failed: {e}", url=url) from e

            content_type = response.headers.get("content-type") or ""
        finally:
            response.close()

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        if debug_obj:
            debug_obj.response_size = len(body)
            debug_obj.end()
        return bytes(body), content_type, elapsed_ms

    def close(self):
        """Close the session. No-op if session was externally provided."""
        if self._session and not self._external_session:
            self._session.close()
        self._session = None


# ── Smoke check ─────────────────────────────────────────────

def check_connection() -> bool:
    """Fetch one feed page and its first image, printing a timing report."""
    debugger = SpeedDebugger()
    client = PixabayClient(browser=random.choice(BROWSER_PROFILES))

    try:
        rd1 = debugger.new_request("search (cold)")
        data, _ = client.search_images({"page": 1}, debug_obj=rd1)
        hits = data.get("hits", [])
        print(f"\n  {len(hits)} hits, {data.get('totalHits', 0):,} total")

        rd2 = debugger.new_request("search (warm)")
        client.search_images({"page": 2}, debug_obj=rd2)

        if hits:
            rd3 = debugger.new_request("image download", kind="download")
            client.download(hits[0]["largeImageURL"], debug_obj=rd3)
    except (TransportError, DecodeError) as e:
        print(f"Error: {e}")
        return False
    finally:
        client.close()

    debugger.print_summary()
    return True


if __name__ == "__main__":
    check_connection()
