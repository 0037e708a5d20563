import io

import pytest
from PIL import Image

from imagefeed.endpoints.images import ImageHit


def make_png(width: int = 4, height: int = 3, color=(200, 30, 30)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


def make_hit(image_id: int, user: str = "alice", **extra) -> dict:
    return {
        "id": image_id,
        "largeImageURL": f"https://cdn.pixabay.com/photo/{image_id}_1280.jpg",
        "previewURL": f"https://cdn.pixabay.com/photo/{image_id}_150.jpg",
        "pageURL": f"https://pixabay.com/photos/{image_id}/",
        "tags": "computer, laptop",
        "user": user,
        **extra,
    }


def make_image(image_id: int, user: str = "alice") -> ImageHit:
    return ImageHit(
        id=image_id,
        image_url=f"https://cdn.pixabay.com/photo/{image_id}_1280.jpg",
        tags="computer",
        user=user,
    )


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()
