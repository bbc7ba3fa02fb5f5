"""Session package: current user and session lifecycle."""

from session.provider import SessionProvider

__all__ = ["SessionProvider"]
