"""Enumerations for story, chapter and character status tracking."""

from enum import Enum


class StoryStatus(str, Enum):
    DRAFT = "draft"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    PAUSED = "paused"


class ChapterStatus(str, Enum):
    DRAFT = "draft"
    REVIEW = "review"
    PUBLISHED = "published"


class CharacterRole(str, Enum):
    PROTAGONIST = "protagonist"
    ANTAGONIST = "antagonist"
    SUPPORTING = "supporting"
    OTHER = "other"


class ErrorReason(str, Enum):
    """Why a store or session operation failed."""
    NOT_AUTHENTICATED = "not_authenticated"
    VALIDATION = "validation"
    REMOTE_WRITE = "remote_write"
    REMOTE_READ = "remote_read"
    NOT_FOUND = "not_found"
    SESSION_CLOSED = "session_closed"


class EditorState(str, Enum):
    LOADING = "loading"
    EDITING = "editing"
    AUTOSAVE_PENDING = "autosave_pending"
    SAVING = "saving"
    CLOSED = "closed"
