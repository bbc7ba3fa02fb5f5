"""User-facing notifications ("toasts") raised by the store and editor."""

import logging
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class Notifier(Protocol):
    """Protocol for surfacing short human-readable messages to the user.

    Implement this protocol to route notifications to a view.
    """

    def success(self, message: str) -> None:
        """Called after an explicit action completed."""
        ...

    def error(self, message: str) -> None:
        """Called when an operation failed and was abandoned."""
        ...


class LoggingNotifier:
    """Lightweight notifier that writes notifications to the standard logger."""

    def success(self, message: str) -> None:
        logger.info("✓ %s", message)

    def error(self, message: str) -> None:
        logger.error("✗ %s", message)


class RecordingNotifier:
    """Notifier that keeps every message, newest last.

    Useful for views that render notifications in batches.
    """

    def __init__(self):
        self.messages: list[tuple[str, str]] = []

    def success(self, message: str) -> None:
        self.messages.append(("success", message))

    def error(self, message: str) -> None:
        self.messages.append(("error", message))

    def of_kind(self, kind: str) -> list[str]:
        return [m for k, m in self.messages if k == kind]

    def clear(self) -> None:
        self.messages.clear()
