import os


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "y", "on")


class CacheConfig:
    # Image download timeouts (seconds)
    FETCH_CONNECT_TIMEOUT: float = float(os.getenv("FETCH_CONNECT_TIMEOUT", "5"))
    FETCH_READ_TIMEOUT: float = float(os.getenv("FETCH_READ_TIMEOUT", "10"))

    # Largest image body accepted (bytes); 0 disables the check
    MAX_IMAGE_BYTES: int = int(os.getenv("MAX_IMAGE_BYTES", str(20 * 1024 * 1024)))

    # JSON event line per leader/join/resolve/failure
    CACHE_EVENT_LOGS: bool = _env_bool("CACHE_EVENT_LOGS", "false")

    # Sessions pre-warmed against the image CDN at startup
    PREWARM_SESSIONS: int = int(os.getenv("PREWARM_SESSIONS", "4"))
