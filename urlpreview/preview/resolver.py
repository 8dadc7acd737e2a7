"""Resolve a piece of text into a link preview.

Outcomes for callers:
- ``PreviewResult``: metadata found (thumbnail optional)
- ``None``: nothing to preview; not an error
- an exception: anything other than the scraper's "no preview" signal
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import partial
from typing import Callable, Optional

from urlpreview.media.http_stream import open_http_stream
from urlpreview.media.thumbnails import extract_image_thumb
from urlpreview.media.upload import prepare_image_media
from urlpreview.preview.acquire import MediaPreparer, StreamOpener, ThumbExtractor, acquire_thumbnail
from urlpreview.preview.options import PreviewOptions
from urlpreview.preview.redirects import RedirectState, should_follow_redirect
from urlpreview.preview.types import NoPreviewFound, PreviewResult, ScrapedPage
from urlpreview.preview.url_utils import normalize_preview_url
from urlpreview.scraping.scraper import scrape_link_preview


# Phrase third-party scrapers use for "nothing to preview".
NO_PREVIEW_MARKER = "receive a valid"

# scrape(url, *, handle_redirect, fetch_opts) -> ScrapedPage
Scraper = Callable[..., ScrapedPage]


def is_no_preview_error(exc: BaseException) -> bool:
    if isinstance(exc, NoPreviewFound):
        return True
    return NO_PREVIEW_MARKER in str(exc)


@dataclass(frozen=True)
class UrlInfoResolver:
    """Preview pipeline with pluggable collaborators."""

    scraper: Scraper = scrape_link_preview
    open_stream: StreamOpener = open_http_stream
    extract_thumb: ThumbExtractor = extract_image_thumb
    prepare_media: MediaPreparer = prepare_image_media

    def resolve(self, text: str, options: Optional[PreviewOptions] = None) -> Optional[PreviewResult]:
        opts = options or PreviewOptions()
        try:
            preview_link = normalize_preview_url(text)
            state = RedirectState()
            page = self.scraper(
                preview_link,
                handle_redirect=partial(should_follow_redirect, state, max_redirects=opts.max_redirects),
                fetch_opts=opts.fetch_opts,
            )
        except Exception as e:
            if is_no_preview_error(e):
                return None
            raise

        if page is None or not page.title:
            return None

        image = page.images[0] if page.images else None
        thumbnail = acquire_thumbnail(
            image,
            opts,
            open_stream=self.open_stream,
            extract_thumb=self.extract_thumb,
            prepare_media=self.prepare_media,
            log_url=preview_link,
        )
        return PreviewResult(
            canonical_url=page.url,
            matched_text=text,
            title=page.title,
            description=page.description,
            original_thumbnail_url=image,
            thumbnail=thumbnail,
            thumbnail_width=opts.thumbnail_width,
            thumbnail_height=opts.thumbnail_width,
        )


def get_url_info(text: str, options: Optional[PreviewOptions] = None) -> Optional[PreviewResult]:
    """Resolve ``text`` with the default collaborators."""
    return UrlInfoResolver().resolve(text, options)
