"""Configuration settings loaded from .env file."""

from pathlib import Path
from typing import Literal, Optional

from pydantic import ValidationError as PydanticValidationError
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings

from config.exceptions import InvalidConfigError


class Settings(BaseSettings):
    """Application settings, loaded from .env file.

    ``backend`` selects the remote data gateway: "supabase" talks to the
    hosted project, "sqlite" keeps the same schema in a local file.
    """

    # Backend
    backend: Literal["sqlite", "supabase"] = "sqlite"
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    sqlite_db_path: Path = Path("./data/storylab.db")

    # Editor
    autosave_delay_seconds: float = 3.0
    default_chapter_title: str = "Chapter {number}"

    # Logging
    log_dir: Path = Path("./data/logs")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @field_validator("autosave_delay_seconds")
    @classmethod
    def validate_autosave_delay(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("autosave_delay_seconds must be > 0")
        return v

    @field_validator("default_chapter_title")
    @classmethod
    def validate_chapter_title(cls, v: str) -> str:
        if "{number}" not in v:
            raise ValueError("default_chapter_title must contain '{number}'")
        return v

    @field_validator("sqlite_db_path", "log_dir")
    @classmethod
    def ensure_parent_dirs(cls, v: Path) -> Path:
        v.parent.mkdir(parents=True, exist_ok=True)
        return v

    @model_validator(mode="after")
    def validate_backend(self) -> "Settings":
        if self.backend == "supabase" and not (self.supabase_url and self.supabase_key):
            raise ValueError(
                "supabase backend requires supabase_url and supabase_key"
            )
        return self


def load_settings(**overrides) -> Settings:
    """Load settings from the environment and .env file.

    Raises:
        InvalidConfigError: a value failed validation.
    """
    try:
        return Settings(**overrides)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or "settings"
        raise InvalidConfigError(
            f"Invalid configuration: {first['msg']}", {"field": field}
        ) from e
