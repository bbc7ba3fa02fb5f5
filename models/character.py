"""Character sheet data model."""

from dataclasses import dataclass, field
from typing import Optional

from models.enums import CharacterRole


@dataclass
class Character:
    """Represents a reusable character sheet."""
    id: Optional[str] = None
    name: str = ""
    avatar: Optional[str] = None
    age: str = ""  # free text, e.g. "24 years"
    physical_description: str = ""
    personality: str = ""
    backstory: str = ""
    role: CharacterRole = CharacterRole.OTHER
    relationships: str = ""
    story_ids: list[str] = field(default_factory=list)
    created_at: Optional[str] = None
