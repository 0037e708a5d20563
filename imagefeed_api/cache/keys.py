"""
Request keys for the image cache.

Two URLs that address the same resource must produce equal keys, otherwise
concurrent requests for one image would start separate downloads.
"""

from dataclasses import dataclass
from urllib.parse import urlsplit, urlunsplit

_DEFAULT_PORTS = {"http": 80, "https": 443}


@dataclass(frozen=True, slots=True)
class RequestKey:
    """Normalized URL used as the cache lookup key."""
    url: str

    def __str__(self) -> str:
        return self.url


def normalize(url: str) -> RequestKey:
    """
    Canonical key for `url`.

    Scheme and host are lowercased, default ports and the fragment are
    dropped, an empty path becomes "/". The query string is kept verbatim.
    Never raises: input urllib cannot split is keyed on its stripped text.
    """
    raw = url.strip()
    try:
        parts = urlsplit(raw)
        port = parts.port
    except ValueError:
        return RequestKey(raw)

    scheme = parts.scheme.lower()
    if not parts.netloc:
        return RequestKey(urlunsplit((scheme, "", parts.path, parts.query, "")))

    host = parts.hostname or ""
    if ":" in host:
        host = f"[{host}]"
    userinfo, sep, _ = parts.netloc.rpartition("@")
    netloc = f"{userinfo}{sep}{host}"
    if port is not None and port != _DEFAULT_PORTS.get(scheme):
        netloc = f"{netloc}:{port}"

    return RequestKey(urlunsplit((scheme, netloc, parts.path or "/", parts.query, "")))


def is_fetchable_url(url: str) -> bool:
    """True for absolute http(s) URLs with a host."""
    try:
        parts = urlsplit(url.strip())
        port = parts.port
    except ValueError:
        return False
    if port == 0:
        return False
    return parts.scheme.lower() in _DEFAULT_PORTS and bool(parts.hostname)
