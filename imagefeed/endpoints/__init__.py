# imagefeed API Endpoints
from .images import (
    ImageHit,
    parse_hits,
    get_feed_page,
    get_category_images,
    filtered_images,
)

__all__ = [
    "ImageHit",
    "parse_hits",
    "get_feed_page",
    "get_category_images",
    "filtered_images",
]
