from .coalescer import SingleFlightCache, InProgress, Resolved, CacheEntry
from .images import DecodedImage, decode_image
from .keys import RequestKey, normalize, is_fetchable_url
from .manager import ImageCacheManager

__all__ = [
    "SingleFlightCache",
    "InProgress",
    "Resolved",
    "CacheEntry",
    "DecodedImage",
    "decode_image",
    "RequestKey",
    "normalize",
    "is_fetchable_url",
    "ImageCacheManager",
]
