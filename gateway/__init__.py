"""Gateway package: remote data gateway protocol and backend adapters."""

from config.settings import Settings
from gateway.base import (
    DataGateway,
    STORIES,
    CHAPTERS,
    CHARACTERS,
    NOTES,
    STORY_CHARACTERS,
    PROFILES,
)
from gateway.sqlite import SQLiteGateway


def create_gateway(settings: Settings) -> DataGateway:
    """Build the gateway selected by ``settings.backend``."""
    if settings.backend == "supabase":
        from gateway.supabase_gateway import SupabaseGateway
        return SupabaseGateway(settings.supabase_url, settings.supabase_key)
    return SQLiteGateway(settings.sqlite_db_path)


__all__ = [
    "DataGateway",
    "SQLiteGateway",
    "create_gateway",
    "STORIES",
    "CHAPTERS",
    "CHARACTERS",
    "NOTES",
    "STORY_CHARACTERS",
    "PROFILES",
]
