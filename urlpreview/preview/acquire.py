"""Thumbnail acquisition for a resolved preview.

Two mutually exclusive paths:
- upload-mediated: the caller supplied an upload function; failures propagate.
- direct fetch: stream + resize locally; failures are logged and dropped.
Either way the JPEG is capped to ``max_thumbnail_bytes``.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

from urlpreview.media.thumbnails import cap_thumbnail
from urlpreview.media.upload import THUMBNAIL_LINK
from urlpreview.preview.options import FetchOptions, MediaUploadFunction, PreviewOptions
from urlpreview.preview.types import (
    DirectThumbnail,
    ImageAttachment,
    NoThumbnail,
    ThumbnailOutcome,
    UploadedThumbnail,
)


logger = logging.getLogger(__name__)

StreamOpener = Callable[[str, FetchOptions], Iterable[bytes]]
ThumbExtractor = Callable[[Iterable[bytes], int], bytes]
# prepare(image_url, *, upload, media_type, fetch_opts) -> ImageAttachment | None
MediaPreparer = Callable[..., Optional[ImageAttachment]]


def upload_mediated_thumbnail(
    image_url: str,
    options: PreviewOptions,
    upload: MediaUploadFunction,
    prepare_media: MediaPreparer,
) -> UploadedThumbnail:
    attachment = prepare_media(
        image_url,
        upload=upload,
        media_type=THUMBNAIL_LINK,
        fetch_opts=options.fetch_opts,
    )
    jpeg = None
    if attachment is not None and attachment.jpeg_thumbnail:
        jpeg = cap_thumbnail(bytes(attachment.jpeg_thumbnail), options.max_thumbnail_bytes)
    return UploadedThumbnail(jpeg=jpeg, attachment=attachment)


def direct_fetch_thumbnail(
    image_url: str,
    options: PreviewOptions,
    open_stream: StreamOpener,
    extract_thumb: ThumbExtractor,
    *,
    log_url: Optional[str] = None,
) -> ThumbnailOutcome:
    """Best effort: any failure degrades to ``NoThumbnail``."""
    try:
        stream = open_stream(image_url, options.fetch_opts)
        jpeg = extract_thumb(stream, options.thumbnail_width)
        return DirectThumbnail(jpeg=cap_thumbnail(jpeg, options.max_thumbnail_bytes))
    except Exception:
        (options.logger or logger).debug(
            "error in generating thumbnail url=%s image=%s",
            log_url or image_url,
            image_url,
            exc_info=True,
        )
        return NoThumbnail()


def acquire_thumbnail(
    image_url: Optional[str],
    options: PreviewOptions,
    *,
    open_stream: StreamOpener,
    extract_thumb: ThumbExtractor,
    prepare_media: MediaPreparer,
    log_url: Optional[str] = None,
) -> ThumbnailOutcome:
    if not image_url:
        return NoThumbnail()
    if options.upload_image is not None:
        return upload_mediated_thumbnail(image_url, options, options.upload_image, prepare_media)
    return direct_fetch_thumbnail(image_url, options, open_stream, extract_thumb, log_url=log_url)
