"""Text utilities: plain-text projection of chapter markup, word counting."""

import re

from bs4 import BeautifulSoup

# Elements whose boundaries break a line when the markup is rendered
_BLOCK_TAGS = (
    "address", "article", "aside", "blockquote", "dd", "div", "dl", "dt",
    "figcaption", "figure", "footer", "h1", "h2", "h3", "h4", "h5", "h6",
    "header", "hr", "li", "main", "nav", "ol", "p", "pre", "section",
    "table", "tr", "ul",
)

_TAG_HINT_RE = re.compile(r"<[a-zA-Z!/]")


def plain_text(markup: str) -> str:
    """Render chapter markup to the text a reader would see.

    Line breaks are inserted at ``<br>`` and at block element boundaries,
    inline markup (``<b>Hel</b>lo``) does not split words, and entities are
    decoded. Text without any tags is returned unchanged.
    """
    if not markup:
        return ""
    if not _TAG_HINT_RE.search(markup):
        return markup

    soup = BeautifulSoup(markup, "html.parser")
    for tag in soup.find_all(["script", "style"]):
        tag.decompose()
    for br in soup.find_all("br"):
        br.replace_with("\n")
    for block in soup.find_all(_BLOCK_TAGS):
        block.insert_before("\n")
        block.insert_after("\n")
    return soup.get_text()


def count_words(text: str) -> int:
    """Count whitespace-separated tokens after trimming."""
    return len(text.strip().split())


def markup_word_count(markup: str) -> int:
    """Word count of the rendered text of ``markup``."""
    return count_words(plain_text(markup))


def excerpt(text: str, limit: int = 150) -> str:
    """Return ``text`` cut to ``limit`` characters with an ellipsis."""
    if not text:
        return ""
    text = text.strip()
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + "..."
