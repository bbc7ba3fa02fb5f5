"""Authenticated user as supplied by the session provider."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class User:
    id: str
    name: str = ""
    email: str = ""
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
