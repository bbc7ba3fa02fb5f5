"""Tools package: text utilities for chapter markup and form validation."""

from tools.text_utils import (
    plain_text,
    count_words,
    markup_word_count,
    excerpt,
)
from tools.validation import require_text, parse_tags

__all__ = [
    "plain_text",
    "count_words",
    "markup_word_count",
    "excerpt",
    "require_text",
    "parse_tags",
]
