"""Models package: dataclasses, enums and update intents."""

from models.story import Story, Chapter
from models.character import Character
from models.note import Note
from models.user import User
from models.result import OpResult
from models.updates import (
    UNSET,
    StoryUpdate,
    ChapterUpdate,
    CharacterUpdate,
    NoteUpdate,
    ProfileUpdate,
)
from models.enums import (
    StoryStatus,
    ChapterStatus,
    CharacterRole,
    ErrorReason,
    EditorState,
)

__all__ = [
    "Story",
    "Chapter",
    "Character",
    "Note",
    "User",
    "OpResult",
    "UNSET",
    "StoryUpdate",
    "ChapterUpdate",
    "CharacterUpdate",
    "NoteUpdate",
    "ProfileUpdate",
    "StoryStatus",
    "ChapterStatus",
    "CharacterRole",
    "ErrorReason",
    "EditorState",
]
