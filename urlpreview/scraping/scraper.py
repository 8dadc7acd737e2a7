"""Page metadata scraping for link previews.

Redirects are followed one hop at a time; every hop is put to the caller's
decision function first. A refused hop ends the chain and the response
already in hand is the one parsed.
"""

from __future__ import annotations

from typing import List, Optional, Union
from urllib.parse import urljoin, urlparse

import requests
import trafilatura
from bs4 import BeautifulSoup

from urlpreview.media.http_stream import RedirectHandler, follow_redirects, validate_fetch_url
from urlpreview.preview.options import FetchOptions
from urlpreview.preview.types import BlockedUrlError, NoPreviewFound, ScrapedPage


MAX_HTML_BYTES = 2_000_000

_HTML_TYPES = ("text/html", "application/xhtml+xml")
_IMAGE_META = (
    "og:image",
    "og:image:url",
    "og:image:secure_url",
    "twitter:image",
    "twitter:image:src",
)


def _never_follow(_base: str, _forwarded: str) -> bool:
    return False


def scrape_link_preview(
    url: str,
    *,
    handle_redirect: RedirectHandler = _never_follow,
    fetch_opts: FetchOptions = FetchOptions(),
    session: Optional[requests.Session] = None,
) -> ScrapedPage:
    """Fetch ``url`` and extract title/description/images.

    Raises ``NoPreviewFound`` when the input is not a usable http(s) URL or the
    server answers with an error status. Transport errors propagate.
    """
    target = (url or "").strip()
    try:
        p = urlparse(target)
    except ValueError:
        raise NoPreviewFound() from None
    if p.scheme not in ("http", "https") or not p.hostname or any(c.isspace() for c in target):
        raise NoPreviewFound()
    reason = validate_fetch_url(target)
    if reason:
        raise BlockedUrlError(target, reason)

    own_session = session is None
    sess = session if session is not None else requests.Session()
    try:
        resp, final_url = follow_redirects(sess.get, target, fetch_opts, handle_redirect)
        with resp:
            if resp.status_code >= 400:
                raise NoPreviewFound(f"did not receive a valid response (http {resp.status_code}) from {final_url}")
            content_type = resp.headers.get("Content-Type", "")
            mime = content_type.split(";", 1)[0].strip().lower()
            if mime and mime not in _HTML_TYPES:
                return ScrapedPage(url=final_url)
            body = _read_body(resp)
            declared = "charset=" in content_type.lower()
            encoding = resp.encoding
    finally:
        if own_session:
            sess.close()

    document: Union[str, bytes] = body
    # Without a declared charset the parsers sniff <meta charset> from the bytes.
    if declared and encoding:
        try:
            document = body.decode(encoding, errors="replace")
        except LookupError:
            pass
    return parse_page(document, final_url)


def _read_body(resp: requests.Response) -> bytes:
    content = bytearray()
    for chunk in resp.iter_content(chunk_size=64 * 1024):
        if not chunk:
            continue
        content.extend(chunk)
        if len(content) >= MAX_HTML_BYTES:
            # metadata lives in <head>; the prefix is enough
            break
    return bytes(content[:MAX_HTML_BYTES])


def _meta(soup: BeautifulSoup, *names: str) -> Optional[str]:
    for name in names:
        tag = soup.find("meta", attrs={"property": name}) or soup.find("meta", attrs={"name": name})
        if tag:
            content = (tag.get("content") or "").strip()
            if content:
                return content
    return None


def _absolute(base: str, candidates: List[str]) -> List[str]:
    out: List[str] = []
    seen = set()
    for raw in candidates:
        if not raw or raw.strip().startswith("data:"):
            continue
        absolute = urljoin(base, raw.strip())
        if urlparse(absolute).scheme not in ("http", "https"):
            continue
        if absolute in seen:
            continue
        seen.add(absolute)
        out.append(absolute)
    return out


def _images(soup: BeautifulSoup, base: str) -> List[str]:
    found: List[str] = []
    for name in _IMAGE_META:
        for tag in soup.find_all("meta", attrs={"property": name}) + soup.find_all("meta", attrs={"name": name}):
            found.append(tag.get("content") or "")
    images = _absolute(base, found)
    if images:
        return images

    link = soup.find("link", rel=lambda r: r and "image_src" in r)
    if link and link.get("href"):
        images = _absolute(base, [link["href"]])
        if images:
            return images

    return _absolute(base, [img.get("src") or "" for img in soup.find_all("img")])


def parse_page(html: Union[str, bytes], url: str) -> ScrapedPage:
    """Extract preview metadata from an HTML document fetched from ``url``.

    ``html`` may be undecoded bytes; the document's own charset is honoured then.
    """
    if not html.strip():
        return ScrapedPage(url=url)
    soup = BeautifulSoup(html, "html.parser")
    if isinstance(html, bytes):
        # hand trafilatura the text decoded with the charset BeautifulSoup detected
        try:
            html = html.decode(soup.original_encoding or "utf-8", errors="replace")
        except LookupError:
            html = html.decode("utf-8", errors="replace")
    doc = trafilatura.extract_metadata(html, default_url=url)

    title = (doc.title if doc else None) or _meta(soup, "og:title", "twitter:title")
    if not title and soup.title and soup.title.string:
        title = soup.title.string
    description = (doc.description if doc else None) or _meta(
        soup, "og:description", "twitter:description", "description"
    )

    return ScrapedPage(
        url=url,
        title=title.strip() if title else None,
        description=description.strip() if description else None,
        images=_images(soup, url),
    )
