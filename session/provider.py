"""Session provider wrapping the gateway's identity service."""

import logging
from typing import Awaitable, Callable, Optional

from config.exceptions import AuthError, GatewayError
from gateway.base import DataGateway
from gateway.mapping import compile_update, now_iso
from models.enums import ErrorReason
from models.result import OpResult
from models.updates import ProfileUpdate
from models.user import User
from tools.validation import require_text

logger = logging.getLogger(__name__)

SessionListener = Callable[[Optional[User]], Awaitable[None]]


class SessionProvider:
    """Exposes the current user and the session lifecycle.

    Listeners are awaited in registration order after every sign-in,
    sign-up, restore and sign-out.
    """

    def __init__(self, gateway: DataGateway):
        self.gateway = gateway
        self._user: Optional[User] = None
        self._listeners: list[SessionListener] = []

    @property
    def user(self) -> Optional[User]:
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None

    def add_listener(self, listener: SessionListener) -> Callable[[], None]:
        """Register ``listener`` and return a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _set_user(self, user: Optional[User]):
        self._user = user
        for listener in list(self._listeners):
            await listener(user)

    async def sign_in(self, email: str, password: str) -> User:
        """Sign in with email and password.

        Raises:
            EmptyFieldError: email or password is blank.
            InvalidCredentialsError: the identity service rejected the pair.
            AuthError: any other identity failure.
        """
        email = require_text(email, "email")
        require_text(password, "password")
        user = await self.gateway.sign_in(email, password)
        logger.info("Session started for user %s", user.id)
        await self._set_user(user)
        return user

    async def sign_up(self, name: str, email: str, password: str) -> User:
        name = require_text(name, "name")
        email = require_text(email, "email")
        require_text(password, "password")
        user = await self.gateway.sign_up(name, email, password)
        logger.info("Session started for new user %s", user.id)
        await self._set_user(user)
        return user

    async def restore(self) -> Optional[User]:
        """Adopt a session the gateway already holds, if any."""
        user = await self.gateway.current_user()
        if user is not None:
            logger.info("Session restored for user %s", user.id)
        await self._set_user(user)
        return user

    async def sign_out(self) -> None:
        try:
            await self.gateway.sign_out()
        except AuthError as e:
            logger.warning("Remote sign-out failed, clearing local session anyway: %s", e)
        await self._set_user(None)

    async def update_profile(self, update: ProfileUpdate) -> OpResult:
        if self._user is None:
            return OpResult.failure(ErrorReason.NOT_AUTHENTICATED, "Not signed in")
        values = compile_update(update)
        values["updated_at"] = now_iso()
        try:
            await self.gateway.update_profile(self._user.id, values)
        except GatewayError as e:
            logger.error("Profile update failed: %s", e)
            return OpResult.failure(ErrorReason.REMOTE_WRITE, "Could not update profile")
        user = await self.gateway.current_user()
        self._user = user
        return OpResult.success(user)
