"""JPEG thumbnail generation and the inline size cap."""

from __future__ import annotations

import io
from dataclasses import dataclass
from typing import Iterable

from PIL import Image, UnidentifiedImageError

from urlpreview.preview.options import MAX_THUMBNAIL_BYTES
from urlpreview.preview.types import ThumbnailError


MAX_SOURCE_IMAGE_BYTES = 10 * 1024 * 1024
JPEG_QUALITY = 50
# Decoded images above this are refused before their pixels are loaded.
MAX_IMAGE_PIXELS = 50_000_000


@dataclass(frozen=True)
class ImageThumb:
    jpeg: bytes
    original_width: int
    original_height: int
    mimetype: str = "image/jpeg"


def cap_thumbnail(buf: bytes, max_bytes: int = MAX_THUMBNAIL_BYTES) -> bytes:
    """Truncate ``buf`` to ``max_bytes``.

    This is a byte slice, not a resize: the tail of an oversized JPEG is lost.
    Buffers within the limit are returned unchanged.
    """
    if len(buf) > max_bytes:
        return bytes(buf[:max_bytes])
    return bytes(buf)


def read_stream(stream: Iterable[bytes], *, max_bytes: int = MAX_SOURCE_IMAGE_BYTES) -> bytes:
    buf = bytearray()
    for chunk in stream:
        buf.extend(chunk)
        if len(buf) > max_bytes:
            close = getattr(stream, "close", None)
            if close is not None:
                close()
            raise ThumbnailError(f"image larger than {max_bytes} bytes")
    return bytes(buf)


def generate_thumbnail(data: bytes, width: int) -> ImageThumb:
    """Resize image bytes to ``width`` (aspect kept) and encode as JPEG."""
    if width <= 0:
        raise ThumbnailError(f"invalid thumbnail width {width}")
    try:
        with Image.open(io.BytesIO(data)) as img:
            orig_w, orig_h = img.size
            if orig_w * orig_h > MAX_IMAGE_PIXELS:
                raise ThumbnailError(f"image too large: {orig_w}x{orig_h} pixels")
            img.load()
            mimetype = Image.MIME.get(img.format or "", "application/octet-stream")
            rgb = img.convert("RGB")
    except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as e:
        raise ThumbnailError(f"cannot decode image: {e}") from e

    height = max(1, round(orig_h * width / orig_w))
    resized = rgb.resize((width, height), Image.LANCZOS)
    out = io.BytesIO()
    resized.save(out, format="JPEG", quality=JPEG_QUALITY)
    return ImageThumb(jpeg=out.getvalue(), original_width=orig_w, original_height=orig_h, mimetype=mimetype)


def extract_image_thumb(stream: Iterable[bytes], width: int) -> bytes:
    """Read an image stream and return a JPEG thumbnail of the given width."""
    return generate_thumbnail(read_stream(stream), width).jpeg
