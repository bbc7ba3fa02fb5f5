"""Custom exception hierarchy for the writing workspace."""

from typing import Optional


class StoryLabError(Exception):
    """Base exception for all workspace errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


# ---- Gateway Errors ----

class GatewayError(StoryLabError):
    """Base exception for remote data gateway failures."""


class GatewayReadError(GatewayError):
    """A select against the remote backend failed."""

    def __init__(self, table: str, message: str = ""):
        super().__init__(message or f"Failed to read from {table}", {"table": table})
        self.table = table


class GatewayWriteError(GatewayError):
    """An insert, update or delete against the remote backend failed."""

    def __init__(self, table: str, operation: str, message: str = ""):
        super().__init__(
            message or f"Failed to {operation} {table}",
            {"table": table, "operation": operation},
        )
        self.table = table
        self.operation = operation


# ---- Auth Errors ----

class AuthError(GatewayError):
    """Base exception for identity service errors."""


class InvalidCredentialsError(AuthError):
    """Email/password pair was rejected."""

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message)


class NotAuthenticatedError(AuthError):
    """An operation required a signed-in user but there is none."""

    def __init__(self, message: str = "Not signed in"):
        super().__init__(message)


# ---- Validation Errors ----

class ValidationError(StoryLabError):
    """Input validation failed."""


class EmptyFieldError(ValidationError):
    """A required field was empty or blank."""

    def __init__(self, field: str, message: str = ""):
        super().__init__(message or f"{field} is required", {"field": field})
        self.field = field


class InvalidConfigError(ValidationError):
    """Configuration value is invalid."""


# ---- Editor Errors ----

class EditorError(StoryLabError):
    """Base exception for chapter editor session errors."""


class NotFoundError(EditorError):
    """The story or chapter being edited does not exist in the store."""

    def __init__(self, kind: str, identifier: str):
        super().__init__(f"{kind} not found", {"id": identifier})
        self.kind = kind
        self.identifier = identifier


class EditorClosedError(EditorError):
    """The editor session was used after it was closed."""

    def __init__(self, message: str = "Editor session is closed"):
        super().__init__(message)
