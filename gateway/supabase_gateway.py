"""Gateway to the hosted Supabase project (PostgREST tables + auth)."""

import asyncio
import logging
from typing import Any, Optional

from supabase import AsyncClient, acreate_client

from config.exceptions import (
    AuthError,
    GatewayReadError,
    GatewayWriteError,
    InvalidCredentialsError,
    NotAuthenticatedError,
)
from gateway.base import PROFILES, Filters
from gateway.mapping import build_user, now_iso
from models.user import User

logger = logging.getLogger(__name__)


def _is_credentials_error(error: Exception) -> bool:
    code = getattr(error, "code", None)
    status = getattr(error, "status", None)
    return code == "invalid_credentials" or status == 400


class SupabaseGateway:
    """``DataGateway`` backed by an async Supabase client.

    The client is created lazily on first use, so constructing the gateway
    never touches the network.
    """

    def __init__(self, url: str, key: str, client: Optional[AsyncClient] = None):
        self._url = url
        self._key = key
        self._client = client
        self._client_lock = asyncio.Lock()
        self._user: Optional[User] = None

    async def _get_client(self) -> AsyncClient:
        if self._client is None:
            async with self._client_lock:
                if self._client is None:
                    self._client = await acreate_client(self._url, self._key)
                    logger.info("Supabase async client initialized")
        return self._client

    @staticmethod
    def _apply_filters(query: Any, filters: Optional[Filters]) -> Any:
        for column, value in (filters or {}).items():
            if isinstance(value, (list, tuple, set, frozenset)):
                query = query.in_(column, list(value))
            elif value is None:
                query = query.is_(column, "null")
            else:
                query = query.eq(column, value)
        return query

    # ---- Records ----

    async def select(
        self,
        table: str,
        filters: Optional[Filters] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list[dict]:
        logger.debug("select %s filters=%s", table, filters)
        try:
            client = await self._get_client()
            query = self._apply_filters(client.table(table).select("*"), filters)
            if order_by:
                query = query.order(order_by, desc=descending)
            response = await query.execute()
        except Exception as e:
            raise GatewayReadError(table, f"Failed to read from {table}: {e}") from e
        return list(response.data or [])

    async def insert(self, table: str, rows: dict | list[dict]) -> list[dict]:
        rows = [rows] if isinstance(rows, dict) else list(rows)
        logger.debug("insert %s rows=%d", table, len(rows))
        try:
            client = await self._get_client()
            response = await client.table(table).insert(rows).execute()
        except Exception as e:
            raise GatewayWriteError(table, "insert", f"Failed to insert into {table}: {e}") from e
        return list(response.data or [])

    async def update(self, table: str, values: dict, filters: Filters) -> list[dict]:
        logger.debug("update %s columns=%s filters=%s", table, sorted(values), filters)
        try:
            client = await self._get_client()
            query = self._apply_filters(client.table(table).update(values), filters)
            response = await query.execute()
        except Exception as e:
            raise GatewayWriteError(table, "update", f"Failed to update {table}: {e}") from e
        return list(response.data or [])

    async def delete(self, table: str, filters: Filters) -> None:
        logger.debug("delete %s filters=%s", table, filters)
        try:
            client = await self._get_client()
            query = self._apply_filters(client.table(table).delete(), filters)
            await query.execute()
        except Exception as e:
            raise GatewayWriteError(table, "delete", f"Failed to delete from {table}: {e}") from e

    # ---- Identity ----

    async def _load_user(self, auth_user: Any) -> User:
        metadata = getattr(auth_user, "user_metadata", None) or {}
        profile = await self.get_profile(auth_user.id)
        self._user = build_user(auth_user.id, auth_user.email or "", profile, metadata.get("name", ""))
        return self._user

    async def sign_in(self, email: str, password: str) -> User:
        client = await self._get_client()
        try:
            response = await client.auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except Exception as e:
            if _is_credentials_error(e):
                raise InvalidCredentialsError() from e
            raise AuthError(f"Sign-in failed: {e}") from e
        if response.user is None:
            raise InvalidCredentialsError()
        logger.info("Signed in as %s", email)
        return await self._load_user(response.user)

    async def sign_up(self, name: str, email: str, password: str) -> User:
        client = await self._get_client()
        try:
            response = await client.auth.sign_up(
                {"email": email, "password": password, "options": {"data": {"name": name}}}
            )
        except Exception as e:
            raise AuthError(f"Sign-up failed: {e}") from e
        if response.user is None:
            raise AuthError("Sign-up failed: no user returned")
        if response.session is None:
            raise AuthError("Check your email to confirm the account", {"email": email})

        timestamp = now_iso()
        try:
            await client.table(PROFILES).upsert(
                {"id": response.user.id, "name": name, "updated_at": timestamp}
            ).execute()
        except Exception as e:
            raise GatewayWriteError(PROFILES, "upsert", f"Failed to create profile: {e}") from e
        logger.info("Account created for %s", email)
        return await self._load_user(response.user)

    async def sign_out(self) -> None:
        client = await self._get_client()
        try:
            await client.auth.sign_out()
        except Exception as e:
            raise AuthError(f"Sign-out failed: {e}") from e
        finally:
            self._user = None

    async def current_user(self) -> Optional[User]:
        if self._user is not None:
            return self._user
        client = await self._get_client()
        try:
            session = await client.auth.get_session()
        except Exception as e:
            raise AuthError(f"Failed to restore session: {e}") from e
        if session is None or session.user is None:
            return None
        return await self._load_user(session.user)

    async def get_profile(self, user_id: str) -> Optional[dict]:
        rows = await self.select(PROFILES, {"id": user_id})
        return rows[0] if rows else None

    async def update_profile(self, user_id: str, values: dict) -> dict:
        if self._user is None or self._user.id != user_id:
            raise NotAuthenticatedError()
        rows = await self.update(PROFILES, values, {"id": user_id})
        if not rows:
            raise GatewayWriteError(PROFILES, "update", "Profile not found")
        self._user = build_user(user_id, self._user.email, rows[0])
        return rows[0]
