"""URL helpers for preview lookups."""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import urlparse


_SCHEMES = ("https://", "http://")

# http(s) URLs, or bare domains with at least one dot and a 2+ letter TLD.
_URL_IN_TEXT = re.compile(
    r"(?:https?://[^\s<>\"']+)"
    r"|(?:\b(?:[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z]{2,}(?::\d{2,5})?(?:/[^\s<>\"']*)?)",
    re.IGNORECASE,
)
_TRAILING_PUNCT = ".,;:!?)]}'\""


def normalize_preview_url(text: str) -> str:
    """Prefix ``https://`` unless the text already starts with an http(s) scheme.

    The text is otherwise left untouched; the whole string is the lookup target.
    """
    if text.startswith(_SCHEMES):
        return text
    return "https://" + text


def hostname_of(url: str) -> str:
    """Lowercased hostname of ``url``, or ``""`` if it has none."""
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


def extract_first_url(text: str) -> Optional[str]:
    """First URL-looking substring in free text, without trailing punctuation.

    Useful for picking the preview target out of a message before resolving it.
    """
    if not text:
        return None
    for m in _URL_IN_TEXT.finditer(text):
        candidate = m.group(0).rstrip(_TRAILING_PUNCT)
        # skip the domain part of an email address
        if m.start() > 0 and text[m.start() - 1] == "@":
            continue
        if candidate:
            return candidate
    return None
