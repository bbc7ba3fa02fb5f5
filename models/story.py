"""Story and chapter data models."""

from dataclasses import dataclass, field
from typing import Optional

from models.enums import ChapterStatus, StoryStatus


@dataclass
class Chapter:
    """Represents a single numbered chapter of a story."""
    id: Optional[str] = None
    story_id: str = ""
    number: int = 0
    title: str = ""
    content: str = ""  # serialized rich-text markup
    word_count: int = 0
    status: ChapterStatus = ChapterStatus.DRAFT
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class Story:
    """Represents a writing project and its chapters."""
    id: Optional[str] = None
    title: str = ""
    genre: str = ""
    synopsis: str = ""
    cover_image: Optional[str] = None  # public URL
    status: StoryStatus = StoryStatus.DRAFT
    start_date: str = ""  # YYYY-MM-DD
    chapters: list[Chapter] = field(default_factory=list)  # ordered by number
    characters: list[str] = field(default_factory=list)  # character ids
    notes: str = ""
    word_count: int = 0  # sum of chapter word counts, recomputed on fetch
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def next_chapter_number(self) -> int:
        """Number for a chapter created now; never reuses a deleted chapter's slot."""
        return max((c.number for c in self.chapters), default=0) + 1
