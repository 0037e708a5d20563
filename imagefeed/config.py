"""
imagefeed Configuration
Constants for Pixabay API access: base URL, default feed query, categories and headers.
"""

import os
from typing import Dict, List

# Base URLs
PIXABAY_BASE_URL = "https://pixabay.com/api/"

# Default feed query (editor's choice computer photos, portrait orientation)
FEED_QUERY: Dict[str, str] = {
    "q": "",
    "image_type": "photo",
    "category": "computer",
    "orientation": "vertical",
    "lang": "en",
    "safesearch": "true",
    "editors_choice": "true",
}

# Categories mixed together by the "random" feed
RANDOM_CATEGORIES: List[str] = [
    "nature",
    "education",
    "buildings",
]
RANDOM_PER_PAGE = 3

# Browser impersonation profiles (curl-cffi supported)
BROWSER_PROFILES = [
    "chrome131",
    "chrome124",
    "chrome123",
    "chrome120",
]

# Plain headers for image CDN downloads
IMAGE_HEADERS: Dict[str, str] = {
    "accept": "image/avif,image/webp,image/apng,image/*,*/*;q=0.8",
    "accept-language": "en-US,en;q=0.9",
    "referer": "https://pixabay.com/",
    "connection": "keep-alive",
}

# Redis keys
REDIS_KEYS = {
    "tag_count": "imagefeed:tags:count:",
}

# Session pool
SESSION_POOL_CONFIG = {
    "max_per_browser": int(os.getenv("SESSION_POOL_SIZE", "8")),
    "prewarm_url": "https://pixabay.com/",
}


# Environment variables
def get_pixabay_api_key() -> str:
    return os.getenv("PIXABAY_API_KEY", "")

def get_redis_url() -> str:
    return os.getenv("REDIS_URL", "redis://localhost:6379")
