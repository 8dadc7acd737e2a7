"""Upload-mediated image preparation.

Downloads an image, builds its small inline thumbnail, hashes it, and hands the
bytes to the caller's upload function. Storage is entirely the caller's concern.
"""

from __future__ import annotations

import base64
import hashlib
import logging
from typing import Callable, Iterable

from urlpreview.media.http_stream import open_http_stream
from urlpreview.media.thumbnails import generate_thumbnail, read_stream
from urlpreview.preview.options import FetchOptions, MediaUploadFunction
from urlpreview.preview.types import ImageAttachment


logger = logging.getLogger(__name__)

# Inline thumbnail carried on an uploaded image attachment.
ATTACHMENT_THUMBNAIL_WIDTH = 32
THUMBNAIL_LINK = "thumbnail-link"


def prepare_image_media(
    image_url: str,
    *,
    upload: MediaUploadFunction,
    media_type: str = THUMBNAIL_LINK,
    fetch_opts: FetchOptions = FetchOptions(),
    open_stream: Callable[[str, FetchOptions], Iterable[bytes]] = open_http_stream,
) -> ImageAttachment:
    """Fetch ``image_url``, upload it, and describe the result as an attachment.

    Errors from the download, decode or upload propagate.
    """
    data = read_stream(open_stream(image_url, fetch_opts))
    thumb = generate_thumbnail(data, ATTACHMENT_THUMBNAIL_WIDTH)
    file_sha256 = base64.b64encode(hashlib.sha256(data).digest()).decode("ascii")

    receipt = upload(data, media_type=media_type, file_sha256=file_sha256)
    logger.debug("uploaded %s (%d bytes) as %s -> %s", image_url, len(data), media_type, receipt.media_url)

    return ImageAttachment(
        url=receipt.media_url,
        direct_path=receipt.direct_path,
        mimetype=thumb.mimetype,
        file_sha256=file_sha256,
        file_length=len(data),
        width=thumb.original_width,
        height=thumb.original_height,
        jpeg_thumbnail=thumb.jpeg,
        media_type=media_type,
    )
