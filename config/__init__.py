"""Configuration package: settings, logging, and exceptions."""

from config.exceptions import (
    StoryLabError,
    GatewayError,
    GatewayReadError,
    GatewayWriteError,
    AuthError,
    InvalidCredentialsError,
    NotAuthenticatedError,
    ValidationError,
    EmptyFieldError,
    InvalidConfigError,
    EditorError,
    NotFoundError,
    EditorClosedError,
)
from config.logging_config import setup_logging
from config.settings import Settings, load_settings

__all__ = [
    "Settings",
    "load_settings",
    "setup_logging",
    "StoryLabError",
    "GatewayError",
    "GatewayReadError",
    "GatewayWriteError",
    "AuthError",
    "InvalidCredentialsError",
    "NotAuthenticatedError",
    "ValidationError",
    "EmptyFieldError",
    "InvalidConfigError",
    "EditorError",
    "NotFoundError",
    "EditorClosedError",
]
