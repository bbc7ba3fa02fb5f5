"""Form validation run by views before anything reaches the store."""

from typing import Optional

from config.exceptions import EmptyFieldError


def require_text(value: Optional[str], field: str) -> str:
    """Return ``value`` stripped, or raise if it is missing or blank."""
    if value is None or not value.strip():
        raise EmptyFieldError(field)
    return value.strip()


def parse_tags(raw: str) -> list[str]:
    """Split a comma-separated tag string, dropping blanks and duplicates."""
    tags = (t.strip() for t in raw.split(","))
    return list(dict.fromkeys(t for t in tags if t))
