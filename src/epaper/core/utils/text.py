"""Plain-text helpers: markup stripping and budgeted truncation"""

import re

from bs4 import BeautifulSoup


ELLIPSIS = "..."
_WS_RE = re.compile(r"\s+")


def strip_html(html: str) -> str:
    """Return the visible text of a rich-text fragment with whitespace collapsed."""
    if not html:
        return ""
    text = BeautifulSoup(html, "html.parser").get_text(" ")
    return _WS_RE.sub(" ", text.replace("\xa0", " ")).strip()


def truncate(text: str, max_length: int) -> str:
    """Cut text to max_length characters; a cut result ends in '...'."""
    if len(text) <= max_length:
        return text
    return text[:max_length].rstrip() + ELLIPSIS
