"""Translation between backend rows, model dataclasses and update intents."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from models.character import Character
from models.enums import ChapterStatus, CharacterRole, StoryStatus
from models.note import Note
from models.story import Chapter, Story
from models.updates import UpdateIntent
from models.user import User


def now_iso() -> str:
    """Current UTC time in the ISO format used for every timestamp column."""
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def _column_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple, set)):
        return list(value)
    return value


def compile_update(intent: UpdateIntent, relation_fields: tuple[str, ...] = ()) -> dict:
    """Compile an update intent into the column dict sent to the backend.

    Fields named in ``relation_fields`` live in join tables and are left out.
    """
    return {
        name: _column_value(value)
        for name, value in intent.changes().items()
        if name not in relation_fields
    }


# ---- Stories & chapters ----

def story_to_row(story: Story, user_id: str) -> dict:
    row = {
        "user_id": user_id,
        "title": story.title,
        "genre": story.genre,
        "synopsis": story.synopsis,
        "cover_image": story.cover_image or None,
        "status": story.status.value,
        "notes": story.notes,
        "word_count": story.word_count,
    }
    if story.start_date:
        row["start_date"] = story.start_date
    return row


def row_to_story(row: dict, chapters: list[Chapter], character_ids: list[str]) -> Story:
    ordered = sorted(chapters, key=lambda c: c.number)
    return Story(
        id=row["id"],
        title=row["title"],
        genre=row.get("genre") or "",
        synopsis=row.get("synopsis") or "",
        cover_image=row.get("cover_image") or None,
        status=StoryStatus(row.get("status") or StoryStatus.DRAFT.value),
        start_date=row.get("start_date") or "",
        chapters=ordered,
        characters=list(character_ids),
        notes=row.get("notes") or "",
        word_count=sum(c.word_count for c in ordered),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def chapter_to_row(chapter: Chapter, story_id: str) -> dict:
    return {
        "story_id": story_id,
        "number": chapter.number,
        "title": chapter.title,
        "content": chapter.content,
        "word_count": chapter.word_count,
        "status": chapter.status.value,
    }


def row_to_chapter(row: dict) -> Chapter:
    return Chapter(
        id=row["id"],
        story_id=row["story_id"],
        number=row["number"],
        title=row["title"],
        content=row.get("content") or "",
        word_count=row.get("word_count") or 0,
        status=ChapterStatus(row.get("status") or ChapterStatus.DRAFT.value),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


# ---- Characters ----

def character_to_row(character: Character, user_id: str) -> dict:
    return {
        "user_id": user_id,
        "name": character.name,
        "avatar": character.avatar or None,
        "age": character.age,
        "physical_description": character.physical_description,
        "personality": character.personality,
        "backstory": character.backstory,
        "role": character.role.value,
        "relationships": character.relationships,
    }


def row_to_character(row: dict, story_ids: list[str]) -> Character:
    return Character(
        id=row["id"],
        name=row["name"],
        avatar=row.get("avatar") or None,
        age=row.get("age") or "",
        physical_description=row.get("physical_description") or "",
        personality=row.get("personality") or "",
        backstory=row.get("backstory") or "",
        role=CharacterRole(row.get("role") or CharacterRole.OTHER.value),
        relationships=row.get("relationships") or "",
        story_ids=list(story_ids),
        created_at=row.get("created_at"),
    )


# ---- Notes ----

def note_to_row(note: Note, user_id: str) -> dict:
    return {
        "user_id": user_id,
        "title": note.title,
        "content": note.content,
        "tags": list(note.tags),
    }


def row_to_note(row: dict) -> Note:
    return Note(
        id=row["id"],
        title=row["title"],
        content=row.get("content") or "",
        tags=list(row.get("tags") or []),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


# ---- Users ----

def build_user(user_id: str, email: str, profile: Optional[dict], fallback_name: str = "") -> User:
    """Combine identity-service fields with the user's profile row."""
    profile = profile or {}
    name = profile.get("name") or fallback_name or email.split("@")[0]
    return User(
        id=user_id,
        name=name,
        email=email,
        avatar_url=profile.get("avatar_url"),
        bio=profile.get("bio"),
    )
