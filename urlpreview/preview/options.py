"""Per-call configuration for preview resolution."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional

from dotenv import load_dotenv

from urlpreview.preview.types import UploadReceipt


THUMBNAIL_WIDTH_PX = 720
# Inline JPEG thumbnails above this are dropped by the receiving client.
MAX_THUMBNAIL_BYTES = 256_000
MAX_REDIRECTS = 5
DEFAULT_TIMEOUT_MS = 3000
DEFAULT_USER_AGENT = "urlpreview/1.0 (+link preview)"

# upload(data, *, media_type, file_sha256) -> UploadReceipt
MediaUploadFunction = Callable[..., UploadReceipt]


@dataclass(frozen=True)
class FetchOptions:
    timeout: int = DEFAULT_TIMEOUT_MS  # milliseconds
    proxy_url: Optional[str] = None
    headers: Optional[Mapping[str, str]] = None

    def request_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for ``requests`` calls."""
        headers = {"User-Agent": DEFAULT_USER_AGENT}
        if self.headers:
            headers.update(self.headers)
        kwargs: Dict[str, Any] = {
            "timeout": max(self.timeout, 0) / 1000.0,
            "headers": headers,
        }
        if self.proxy_url:
            kwargs["proxies"] = {"http": self.proxy_url, "https": self.proxy_url}
        return kwargs


@dataclass(frozen=True)
class PreviewOptions:
    thumbnail_width: int = THUMBNAIL_WIDTH_PX
    fetch_opts: FetchOptions = field(default_factory=FetchOptions)
    # Presence selects the upload-mediated thumbnail path.
    upload_image: Optional[MediaUploadFunction] = None
    logger: Optional[logging.Logger] = None
    max_redirects: int = MAX_REDIRECTS
    max_thumbnail_bytes: int = MAX_THUMBNAIL_BYTES


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def options_from_env(**overrides: Any) -> PreviewOptions:
    """Build options from the environment (and `.env`, if present).

    Keyword overrides win over the environment, e.g.
    ``options_from_env(upload_image=my_upload)``.
    """
    load_dotenv()
    fetch_opts = FetchOptions(
        timeout=_env_int("URLPREVIEW_TIMEOUT_MS", DEFAULT_TIMEOUT_MS),
        proxy_url=os.environ.get("URLPREVIEW_PROXY_URL", "").strip() or None,
    )
    values: Dict[str, Any] = {
        "thumbnail_width": _env_int("URLPREVIEW_THUMBNAIL_WIDTH", THUMBNAIL_WIDTH_PX),
        "fetch_opts": fetch_opts,
        "max_redirects": _env_int("URLPREVIEW_MAX_REDIRECTS", MAX_REDIRECTS),
        "max_thumbnail_bytes": _env_int("URLPREVIEW_MAX_THUMBNAIL_BYTES", MAX_THUMBNAIL_BYTES),
    }
    values.update(overrides)
    return PreviewOptions(**values)
