"""Free-form note data model."""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class Note:
    id: Optional[str] = None
    title: str = ""
    content: str = ""
    tags: list[str] = field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
