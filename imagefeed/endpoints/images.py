"""
imagefeed Image Endpoints
Feed pages and category samples from the Pixabay search API.
"""

from typing import Optional, Dict, Any, List, Callable
from dataclasses import dataclass

from ..client import PixabayClient
from ..config import RANDOM_PER_PAGE


@dataclass(slots=True, eq=False)
class ImageHit:
    """One feed image. Identity is the Pixabay id."""
    id: int
    image_url: str
    tags: str
    user: str
    preview_url: str = ""
    page_url: str = ""

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ImageHit):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "image_url": self.image_url,
            "tags": self.tags,
            "user": self.user,
            "preview_url": self.preview_url,
            "page_url": self.page_url,
        }


def parse_hit(hit: Dict[str, Any]) -> Optional[ImageHit]:
    """Parse one entry of the `hits` array. Entries without id or image URL are dropped."""
    image_id = hit.get("id")
    image_url = hit.get("largeImageURL")
    if image_id is None or not image_url:
        return None
    try:
        image_id = int(image_id)
    except (TypeError, ValueError):
        return None

    return ImageHit(
        id=image_id,
        image_url=image_url,
        tags=hit.get("tags", ""),
        user=hit.get("user", ""),
        preview_url=hit.get("previewURL", ""),
        page_url=hit.get("pageURL", ""),
    )


def parse_hits(data: Dict[str, Any]) -> List[ImageHit]:
    images = []
    for hit in data.get("hits") or []:
        if not isinstance(hit, dict):
            continue
        if image := parse_hit(hit):
            images.append(image)
    return images


def get_feed_page(
    page: int,
    client: PixabayClient,
    per_page: Optional[int] = None,
) -> tuple[List[ImageHit], float]:
    """
    Fetch one page of the default feed.

    Returns:
        Tuple of (images, response_time_ms)
    """
    params: Dict[str, Any] = {"page": page}
    if per_page:
        params["per_page"] = per_page
    data, elapsed_ms = client.search_images(params)
    return parse_hits(data), elapsed_ms


def get_category_images(
    category: str,
    client: PixabayClient,
    per_page: int = RANDOM_PER_PAGE,
) -> tuple[List[ImageHit], float]:
    """Fetch the first page of a single category."""
    data, elapsed_ms = client.search_images({"category": category, "per_page": per_page})
    return parse_hits(data), elapsed_ms


def filtered_images(
    images: List[ImageHit],
    is_included: Callable[[ImageHit], bool],
) -> List[ImageHit]:
    """
    Order images by user name.

    If the first image whose user starts with "u" passes `is_included`, the
    result is sorted descending, otherwise ascending.
    """
    candidate = next((img for img in images if img.user.lower().startswith("u")), None)
    if candidate is not None and is_included(candidate):
        return sorted(images, key=lambda img: img.user, reverse=True)
    return sorted(images, key=lambda img: img.user)
