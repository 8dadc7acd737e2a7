"""Shared link-preview data types.

A preview is resolved in two stages (metadata, then thumbnail); the records
below are what flows between them and what callers get back.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


class PreviewError(Exception):
    """Base class for errors raised by this package."""


class NoPreviewFound(PreviewError):
    """The scraper found nothing to build a preview from.

    Absorbed by the resolver: callers see ``None``, never this exception.
    """

    def __init__(self, message: str = "did not receive a valid url or page to preview") -> None:
        super().__init__(message)


class ThumbnailError(PreviewError):
    """Image could not be downloaded or decoded into a thumbnail."""


class BlockedUrlError(PreviewError):
    """Outbound URL refused by the fetch safety check."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"refusing to fetch {url!r}: {reason}")
        self.url = url
        self.reason = reason


@dataclass(frozen=True)
class ScrapedPage:
    """What the scraper found at the end of the redirect chain."""

    url: str
    title: Optional[str] = None
    description: Optional[str] = None
    images: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class UploadReceipt:
    media_url: str
    direct_path: Optional[str] = None


@dataclass(frozen=True)
class ImageAttachment:
    """An image that went through the upload path, ready to attach to a message."""

    url: str
    mimetype: str
    file_sha256: str
    file_length: int
    width: int
    height: int
    jpeg_thumbnail: Optional[bytes] = None
    direct_path: Optional[str] = None
    media_type: str = "image"

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "url": self.url,
            "mimetype": self.mimetype,
            "fileSha256": self.file_sha256,
            "fileLength": self.file_length,
            "width": self.width,
            "height": self.height,
        }
        if self.direct_path:
            out["directPath"] = self.direct_path
        if self.jpeg_thumbnail is not None:
            out["jpegThumbnail"] = self.jpeg_thumbnail
        return out


# -----------------------------
# Thumbnail outcome
# -----------------------------
@dataclass(frozen=True)
class NoThumbnail:
    pass


@dataclass(frozen=True)
class DirectThumbnail:
    """Fetched and resized locally (best effort)."""

    jpeg: bytes


@dataclass(frozen=True)
class UploadedThumbnail:
    """Produced by the caller's upload path; carries the full attachment."""

    jpeg: Optional[bytes]
    attachment: Optional[ImageAttachment]


ThumbnailOutcome = Union[NoThumbnail, DirectThumbnail, UploadedThumbnail]


@dataclass(frozen=True)
class PreviewResult:
    canonical_url: str
    matched_text: str
    title: str
    description: Optional[str]
    original_thumbnail_url: Optional[str]
    thumbnail: ThumbnailOutcome
    # Requested width, echoed back as a layout hint (not measured).
    thumbnail_width: int
    thumbnail_height: int

    @property
    def jpeg_thumbnail(self) -> Optional[bytes]:
        if isinstance(self.thumbnail, (DirectThumbnail, UploadedThumbnail)):
            return self.thumbnail.jpeg
        return None

    @property
    def high_quality_thumbnail(self) -> Optional[ImageAttachment]:
        if isinstance(self.thumbnail, UploadedThumbnail):
            return self.thumbnail.attachment
        return None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "canonical-url": self.canonical_url,
            "matched-text": self.matched_text,
            "title": self.title,
            "description": self.description,
            "originalThumbnailUrl": self.original_thumbnail_url,
            "thumbnailWidth": self.thumbnail_width,
            "thumbnailHeight": self.thumbnail_height,
        }
        if self.jpeg_thumbnail is not None:
            out["jpegThumbnail"] = self.jpeg_thumbnail
        if self.high_quality_thumbnail is not None:
            out["highQualityThumbnail"] = self.high_quality_thumbnail.to_dict()
        return out
