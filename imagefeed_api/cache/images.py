"""Decode step of the image fetch: raw bytes in, DecodedImage or DecodeError out."""

import io
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError

from imagefeed.errors import DecodeError


@dataclass(frozen=True, slots=True)
class DecodedImage:
    format: str
    width: int
    height: int
    mode: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    def to_dict(self) -> dict:
        return {
            "format": self.format,
            "width": self.width,
            "height": self.height,
            "mode": self.mode,
            "content_type": self.content_type,
            "size": self.size,
        }


def decode_image(content: bytes, content_type: str = "", url: str = "") -> DecodedImage:
    """Fully decode `content` with Pillow. The original bytes are kept for re-serving."""
    if not content:
        raise DecodeError("Empty image body", url=url)
    try:
        with Image.open(io.BytesIO(content)) as img:
            img.load()
            fmt = img.format or ""
            width, height = img.size
            mode = img.mode
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError) as e:
        raise DecodeError(f"Could not decode image: {e}", url=url) from e

    mime = Image.MIME.get(fmt) or content_type.split(";")[0].strip() or "application/octet-stream"
    return DecodedImage(
        format=fmt,
        width=width,
        height=height,
        mode=mode,
        content_type=mime,
        data=content,
    )
