"""Streamed HTTP fetches for preview images.

Policy:
- Only http(s) URLs with a public-looking host are fetched, redirect targets included.
- Bodies are streamed in chunks; callers decide how much to read.
"""

from __future__ import annotations

import ipaddress
import logging
from typing import Callable, Iterator, Optional, Tuple
from urllib.parse import urljoin, urlparse

import requests

from urlpreview.preview.options import FetchOptions
from urlpreview.preview.types import BlockedUrlError


logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

_PRIVATE_NETS = [
    ipaddress.ip_network("127.0.0.0/8"),
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("169.254.0.0/16"),
    ipaddress.ip_network("0.0.0.0/8"),
    ipaddress.ip_network("::1/128"),
    ipaddress.ip_network("fc00::/7"),
    ipaddress.ip_network("fe80::/10"),
]


def _is_private_ip(hostname: str) -> bool:
    try:
        ip = ipaddress.ip_address(hostname)
    except ValueError:
        return False
    return any(ip in net for net in _PRIVATE_NETS)


def validate_fetch_url(url: str) -> Optional[str]:
    """Return a reason string if ``url`` should not be fetched, else None."""
    try:
        p = urlparse(url)
    except ValueError:
        return "invalid_url"
    if p.scheme not in ("http", "https"):
        return "bad_scheme"
    host = (p.hostname or "").strip().lower()
    if not host:
        return "missing_host"
    if host in ("localhost", "localhost.localdomain"):
        return "blocked_host"
    if _is_private_ip(host):
        return "blocked_private_ip"
    return None

# (current_url, forwarded_url) -> follow?
RedirectHandler = Callable[[str, str], bool]

REDIRECT_STATUSES = {301, 302, 303, 307, 308}
# Same ceiling requests applies to its own redirect handling.
HARD_REDIRECT_LIMIT = 30


def _always_follow(_base: str, _forwarded: str) -> bool:
    return True


def follow_redirects(
    get: Callable[..., requests.Response],
    url: str,
    fetch_opts: FetchOptions,
    handle_redirect: RedirectHandler = _always_follow,
) -> Tuple[requests.Response, str]:
    """GET ``url`` one hop at a time; return the final response and its URL.

    Each hop is first put to ``handle_redirect``; a refused hop ends the chain
    and the redirect response itself is returned. An accepted hop whose target
    fails ``validate_fetch_url`` raises ``BlockedUrlError``.
    """
    current = url
    for _ in range(HARD_REDIRECT_LIMIT + 1):
        resp = get(current, allow_redirects=False, stream=True, **fetch_opts.request_kwargs())
        location = resp.headers.get("Location")
        if resp.status_code not in REDIRECT_STATUSES or not location:
            return resp, current
        forwarded = urljoin(current, location)
        if not handle_redirect(current, forwarded):
            logger.debug("not following redirect %s -> %s", current, forwarded)
            return resp, current
        resp.close()
        reason = validate_fetch_url(forwarded)
        if reason:
            raise BlockedUrlError(forwarded, reason)
        logger.debug("following redirect %s -> %s", current, forwarded)
        current = forwarded
    raise requests.TooManyRedirects(f"exceeded {HARD_REDIRECT_LIMIT} redirects starting at {url}")


def open_http_stream(url: str, fetch_opts: FetchOptions, *, session: Optional[requests.Session] = None) -> Iterator[bytes]:
    """Stream the body of ``url`` as chunks.

    Every redirect target is checked like the starting URL. Raises
    ``BlockedUrlError`` for refused URLs and ``requests`` errors for transport
    failures or HTTP status >= 400. The connection is released when the
    iterator is exhausted or closed.
    """
    reason = validate_fetch_url(url)
    if reason:
        raise BlockedUrlError(url, reason)
    getter = session.get if session is not None else requests.get
    resp, _ = follow_redirects(getter, url, fetch_opts)
    try:
        resp.raise_for_status()
    except requests.HTTPError:
        resp.close()
        raise
    return _iter_body(resp)


def _iter_body(resp: requests.Response) -> Iterator[bytes]:
    with resp:
        for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
            if chunk:
                yield chunk
