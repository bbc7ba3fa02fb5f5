"""Update intents: partial-update payloads with explicit "not set" fields.

Each intent field defaults to ``UNSET``. Only fields that were explicitly
given are sent to the backend; ``None`` is a real value that clears a
nullable column, while ``UNSET`` leaves the column untouched.
"""

from dataclasses import dataclass, fields
from typing import Any

from models.enums import ChapterStatus, CharacterRole, StoryStatus


class Unset:
    """Sentinel type for intent fields that were not provided."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = Unset()


@dataclass(frozen=True)
class UpdateIntent:
    """Base class for per-entity update intents."""

    def changes(self) -> dict[str, Any]:
        """Return ``{field: value}`` for every explicitly set field."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not UNSET
        }

    def is_set(self, name: str) -> bool:
        return getattr(self, name, UNSET) is not UNSET

    def is_empty(self) -> bool:
        return not self.changes()


@dataclass(frozen=True)
class StoryUpdate(UpdateIntent):
    title: str | Unset = UNSET
    genre: str | Unset = UNSET
    synopsis: str | Unset = UNSET
    cover_image: str | None | Unset = UNSET
    status: StoryStatus | Unset = UNSET
    start_date: str | Unset = UNSET
    notes: str | Unset = UNSET
    word_count: int | Unset = UNSET
    # Character ids; when set, the story's join rows are replaced wholesale
    characters: list[str] | Unset = UNSET


@dataclass(frozen=True)
class ChapterUpdate(UpdateIntent):
    number: int | Unset = UNSET
    title: str | Unset = UNSET
    content: str | Unset = UNSET
    word_count: int | Unset = UNSET
    status: ChapterStatus | Unset = UNSET


@dataclass(frozen=True)
class CharacterUpdate(UpdateIntent):
    name: str | Unset = UNSET
    avatar: str | None | Unset = UNSET
    age: str | Unset = UNSET
    physical_description: str | Unset = UNSET
    personality: str | Unset = UNSET
    backstory: str | Unset = UNSET
    role: CharacterRole | Unset = UNSET
    relationships: str | Unset = UNSET
    # Story ids; when set, the character's join rows are replaced wholesale
    story_ids: list[str] | Unset = UNSET


@dataclass(frozen=True)
class NoteUpdate(UpdateIntent):
    title: str | Unset = UNSET
    content: str | Unset = UNSET
    tags: list[str] | Unset = UNSET


@dataclass(frozen=True)
class ProfileUpdate(UpdateIntent):
    name: str | Unset = UNSET
    avatar_url: str | None | Unset = UNSET
    bio: str | None | Unset = UNSET
