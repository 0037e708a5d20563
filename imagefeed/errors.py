"""
Fetch error taxonomy shared by the HTTP client and the image cache.

    FetchError
    ├── TransportError   request could not complete (network, timeout, non-2xx status)
    └── DecodeError      response body could not be interpreted
"""

from typing import Optional


class FetchError(Exception):
    """Base error surfaced by every fetch (feed pages and images)."""

    def __init__(self, message: str, url: str = ""):
        super().__init__(message)
        self.url = url


class TransportError(FetchError):
    def __init__(self, message: str, url: str = "", status_code: Optional[int] = None):
        super().__init__(message, url)
        self.status_code = status_code


class DecodeError(FetchError):
    pass
