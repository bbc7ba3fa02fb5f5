"""Remote data gateway protocol shared by the backend adapters."""

from typing import Any, Optional, Protocol, runtime_checkable

from models.user import User

# Record collections exposed by the backend
STORIES = "stories"
CHAPTERS = "chapters"
CHARACTERS = "characters"
NOTES = "notes"
STORY_CHARACTERS = "story_characters"
PROFILES = "profiles"

TABLES = (STORIES, CHAPTERS, CHARACTERS, NOTES, STORY_CHARACTERS, PROFILES)

# Equality filters; a list/tuple/set value means "column IN values"
Filters = dict[str, Any]


@runtime_checkable
class DataGateway(Protocol):
    """Protocol for the hosted relational backend and its identity service.

    Every method is a suspension point. Failures are raised as
    ``GatewayError`` subclasses; nothing else is expected to escape.
    """

    # ---- Identity ----

    async def sign_in(self, email: str, password: str) -> User:
        ...

    async def sign_up(self, name: str, email: str, password: str) -> User:
        ...

    async def sign_out(self) -> None:
        ...

    async def current_user(self) -> Optional[User]:
        ...

    async def get_profile(self, user_id: str) -> Optional[dict]:
        ...

    async def update_profile(self, user_id: str, values: dict) -> dict:
        ...

    # ---- Records ----

    async def select(
        self,
        table: str,
        filters: Optional[Filters] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list[dict]:
        ...

    async def insert(self, table: str, rows: dict | list[dict]) -> list[dict]:
        ...

    async def update(self, table: str, values: dict, filters: Filters) -> list[dict]:
        ...

    async def delete(self, table: str, filters: Filters) -> None:
        ...
