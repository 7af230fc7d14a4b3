"""
Email Extraction - Harvest Public Contact Addresses from Page Markup

Pools raw candidates from three independent sources of a parsed page and
sanitizes them into a canonical, de-duplicated address list.

Sources:
- mailto: link targets (query string dropped)
- visible body text (script/style removed before reading)
- every attribute value of every element (href, src, data-* ...)

Sanitization:
- percent-decode when the candidate is valid UTF-8 once decoded
- strict re-match to isolate the address
- lower-case
- drop image-file false positives such as ``logo@2x.png``
"""

import re
from typing import Iterable, List, Optional
from urllib.parse import unquote

from .document import HtmlDocument


# Loose scan: applied to text and attribute values, every non-overlapping match.
# \b boundaries are ASCII-only: non-ASCII letters next to an address count as separators
EMAIL_PATTERN = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b", re.ASCII)

# Strict re-match: first valid address inside a single candidate
STRICT_EMAIL_PATTERN = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b", re.ASCII)

IMAGE_EXTENSIONS = frozenset({"png", "jpg", "jpeg", "gif", "svg", "webp", "bmp", "tiff"})


def find_email_candidates(text: Optional[str]) -> List[str]:
    """Return every loose email-shaped token in ``text``, left to right."""
    if not text:
        return []
    return [m.group(0) for m in EMAIL_PATTERN.finditer(text)]


def _percent_decode(raw: str) -> str:
    try:
        return unquote(raw, errors="strict")
    except UnicodeDecodeError:
        return raw


def canonicalize_email(raw: str) -> Optional[str]:
    """Sanitize one raw candidate; None when it is not a usable address."""
    decoded = _percent_decode(raw)
    m = STRICT_EMAIL_PATTERN.search(decoded)
    if not m:
        return None
    email = m.group(0).lower()
    # Only the last dot-segment is checked (user@mail.co.uk -> "uk")
    if email.rsplit(".", 1)[-1] in IMAGE_EXTENSIONS:
        return None
    return email


def sanitize_candidates(raws: Iterable[str]) -> List[str]:
    """Canonicalize and de-duplicate candidates, keeping first-seen order."""
    clean: dict[str, None] = {}
    for raw in raws:
        email = canonicalize_email(raw)
        if email is not None:
            clean.setdefault(email, None)
    return list(clean)


def harvest_candidates(doc: HtmlDocument) -> List[str]:
    """Pool raw candidates from mailto links, body text and attribute values."""
    pool: dict[str, None] = {}
    for address in doc.mailto_targets():
        pool.setdefault(address, None)
    for token in find_email_candidates(doc.body_text()):
        pool.setdefault(token, None)
    for node in doc.elements():
        for value in doc.attribute_values(node):
            for token in find_email_candidates(value):
                pool.setdefault(token, None)
    return list(pool)


def extract_emails(markup: Optional[str]) -> List[str]:
    """Return the canonical email addresses found in ``markup``.

    Never raises on malformed markup; an empty list is a valid result.
    """
    if not markup:
        return []
    doc = HtmlDocument(markup)
    return sanitize_candidates(harvest_candidates(doc))


class EmailExtractor:
    """Injectable wrapper around :func:`extract_emails` used by the pipeline."""

    def extract(self, markup: Optional[str]) -> List[str]:
        return extract_emails(markup)
