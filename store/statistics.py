"""Aggregate writing statistics derived from a store snapshot."""

from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable

from models.character import Character
from models.enums import ChapterStatus, StoryStatus
from models.note import Note
from models.story import Story


@dataclass(frozen=True)
class StoryTotals:
    story_id: str
    title: str
    chapter_count: int
    word_count: int


@dataclass(frozen=True)
class WritingStatistics:
    total_words: int = 0
    active_stories: int = 0
    total_chapters: int = 0
    total_characters: int = 0
    total_notes: int = 0
    chapters_by_status: dict[str, int] = field(default_factory=dict)
    per_story: list[StoryTotals] = field(default_factory=list)  # most words first


def compute_statistics(
    stories: Iterable[Story],
    characters: Iterable[Character],
    notes: Iterable[Note],
) -> WritingStatistics:
    stories = list(stories)
    by_status = Counter({status.value: 0 for status in ChapterStatus})
    for story in stories:
        by_status.update(c.status.value for c in story.chapters)

    per_story = sorted(
        (
            StoryTotals(
                story_id=s.id or "",
                title=s.title,
                chapter_count=len(s.chapters),
                word_count=s.word_count,
            )
            for s in stories
        ),
        key=lambda t: t.word_count,
        reverse=True,
    )
    return WritingStatistics(
        total_words=sum(s.word_count for s in stories),
        active_stories=sum(1 for s in stories if s.status == StoryStatus.IN_PROGRESS),
        total_chapters=sum(len(s.chapters) for s in stories),
        total_characters=len(list(characters)),
        total_notes=len(list(notes)),
        chapters_by_status=dict(by_status),
        per_story=per_story,
    )
