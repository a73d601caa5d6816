"""
Text utilities for product content.

Used by the exporters (HTML cleanup, truncation) and the importer
(removing the apostrophe the CSV injection guard adds).
"""

import re
import unicodedata
from typing import Optional

INJECTION_PREFIXES = ("=", "+", "-", "@")

_SCRIPT_STYLE_RE = re.compile(
    r"<(script|style)\b[^>]*>.*?</\1\s*>",
    re.IGNORECASE | re.DOTALL,
)


def sanitize_html(html: Optional[str]) -> str:
    """
    Remove <script> and <style> blocks (tags and contents).

    Other markup is kept: marketplaces accept basic HTML descriptions.

    Examples:
        "<p>Hi</p><script>alert(1)</script>" → "<p>Hi</p>"
    """
    if not html:
        return ""
    return _SCRIPT_STYLE_RE.sub("", html).strip()


def truncate(text: Optional[str], limit: int, ellipsis: str = "...") -> str:
    """
    Cut text to at most `limit` characters, ending in `ellipsis` when cut.

    Args:
        text: Original text
        limit: Maximum length of the result, ellipsis included
        ellipsis: Marker appended to cut text

    Returns:
        Original text if it fits, otherwise a shortened copy
    """
    if not text:
        return ""
    if len(text) <= limit:
        return text
    if limit <= len(ellipsis):
        return text[:limit]
    return text[:limit - len(ellipsis)] + ellipsis


def unguard_injection(value: str) -> str:
    """
    Undo the CSV injection guard.

    "'=SUM(A1)" → "=SUM(A1)". Other apostrophes are left alone.
    """
    if len(value) > 1 and value[0] == "'" and value[1] in INJECTION_PREFIXES:
        return value[1:]
    return value


def needs_injection_guard(value: str) -> bool:
    """True if a spreadsheet would treat the value as a formula."""
    return bool(value) and value[0] in INJECTION_PREFIXES


def normalize_key(text: Optional[str]) -> str:
    """
    Comparison key for free-text search: accents removed, lower-cased.

    "Café Crème" → "cafe creme"
    """
    if not text:
        return ""
    normalized = unicodedata.normalize("NFD", text.strip())
    return "".join(c for c in normalized if unicodedata.category(c) != "Mn").lower()
