"""Redirect acceptance for metadata lookups.

Hops are accepted only while under the per-resolution bound and only when
they stay on the same site (``example.com`` <-> ``www.example.com``).
"""

from __future__ import annotations

from dataclasses import dataclass

from urlpreview.preview.url_utils import hostname_of


@dataclass
class RedirectState:
    """Accepted-hop counter. One per resolution, never shared."""

    hops: int = 0


def is_same_site(base_host: str, next_host: str) -> bool:
    if not base_host or not next_host:
        return False
    return (
        next_host == base_host
        or next_host == "www." + base_host
        or "www." + next_host == base_host
    )


def should_follow_redirect(
    state: RedirectState,
    base_url: str,
    forwarded_url: str,
    *,
    max_redirects: int,
) -> bool:
    """Decide one hop; increments ``state.hops`` when accepted."""
    if state.hops >= max_redirects:
        return False
    if not is_same_site(hostname_of(base_url), hostname_of(forwarded_url)):
        return False
    state.hops += 1
    return True
