"""Tests for the Supabase gateway against a mocked async client."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from config.exceptions import AuthError, GatewayReadError, GatewayWriteError, InvalidCredentialsError
from gateway.base import DataGateway
from gateway.supabase_gateway import SupabaseGateway


def _mock_client(data=None):
    """Return (client, query) where every builder call returns ``query``."""
    query = MagicMock()
    for method in ("select", "insert", "update", "delete", "upsert", "eq", "in_", "is_", "order"):
        getattr(query, method).return_value = query
    query.execute = AsyncMock(return_value=MagicMock(data=data if data is not None else []))

    client = MagicMock()
    client.table.return_value = query
    client.auth = MagicMock()
    return client, query


def _auth_user(user_id="u1", email="ada@example.com", name="Ada"):
    user = MagicMock()
    user.id = user_id
    user.email = email
    user.user_metadata = {"name": name}
    return user


class TestRecords:
    def test_is_data_gateway(self):
        client, _ = _mock_client()
        assert isinstance(SupabaseGateway("https://x.supabase.co", "key", client=client), DataGateway)

    @pytest.mark.asyncio
    async def test_select_applies_filters_and_order(self):
        client, query = _mock_client(data=[{"id": "s1"}])
        gw = SupabaseGateway("https://x.supabase.co", "key", client=client)

        rows = await gw.select(
            "stories", {"user_id": "u1", "id": ["s1", "s2"], "cover_image": None},
            order_by="created_at", descending=True,
        )

        assert rows == [{"id": "s1"}]
        client.table.assert_called_with("stories")
        query.select.assert_called_once_with("*")
        query.eq.assert_called_once_with("user_id", "u1")
        query.in_.assert_called_once_with("id", ["s1", "s2"])
        query.is_.assert_called_once_with("cover_image", "null")
        query.order.assert_called_once_with("created_at", desc=True)

    @pytest.mark.asyncio
    async def test_insert_wraps_single_row(self):
        client, query = _mock_client(data=[{"id": "n1"}])
        gw = SupabaseGateway("https://x.supabase.co", "key", client=client)
        rows = await gw.insert("notes", {"title": "T"})
        assert rows == [{"id": "n1"}]
        query.insert.assert_called_once_with([{"title": "T"}])

    @pytest.mark.asyncio
    async def test_update_and_delete_filter(self):
        client, query = _mock_client()
        gw = SupabaseGateway("https://x.supabase.co", "key", client=client)
        await gw.update("chapters", {"title": "x"}, {"id": "c1"})
        query.update.assert_called_once_with({"title": "x"})
        await gw.delete("chapters", {"id": "c1"})
        query.delete.assert_called_once_with()
        assert query.eq.call_count == 2

    @pytest.mark.asyncio
    async def test_read_failure_wrapped(self):
        client, query = _mock_client()
        query.execute.side_effect = RuntimeError("network down")
        gw = SupabaseGateway("https://x.supabase.co", "key", client=client)
        with pytest.raises(GatewayReadError) as exc_info:
            await gw.select("stories")
        assert exc_info.value.table == "stories"

    @pytest.mark.asyncio
    async def test_write_failure_wrapped(self):
        client, query = _mock_client()
        query.execute.side_effect = RuntimeError("network down")
        gw = SupabaseGateway("https://x.supabase.co", "key", client=client)
        with pytest.raises(GatewayWriteError) as exc_info:
            await gw.insert("stories", {"title": "T"})
        assert exc_info.value.operation == "insert"


class TestIdentity:
    @pytest.mark.asyncio
    async def test_sign_in_loads_profile(self):
        client, _ = _mock_client(data=[{"id": "u1", "name": "Ada L.", "bio": "hi"}])
        client.auth.sign_in_with_password = AsyncMock(return_value=MagicMock(user=_auth_user()))
        gw = SupabaseGateway("https://x.supabase.co", "key", client=client)

        user = await gw.sign_in("ada@example.com", "pw")

        assert user.id == "u1"
        assert user.name == "Ada L."
        assert user.bio == "hi"
        assert await gw.current_user() == user

    @pytest.mark.asyncio
    async def test_sign_in_invalid_credentials(self):
        client, _ = _mock_client()
        error = Exception("Invalid login credentials")
        error.code = "invalid_credentials"
        client.auth.sign_in_with_password = AsyncMock(side_effect=error)
        gw = SupabaseGateway("https://x.supabase.co", "key", client=client)
        with pytest.raises(InvalidCredentialsError):
            await gw.sign_in("ada@example.com", "bad")

    @pytest.mark.asyncio
    async def test_sign_in_other_failure(self):
        client, _ = _mock_client()
        client.auth.sign_in_with_password = AsyncMock(side_effect=RuntimeError("timeout"))
        gw = SupabaseGateway("https://x.supabase.co", "key", client=client)
        with pytest.raises(AuthError) as exc_info:
            await gw.sign_in("ada@example.com", "pw")
        assert not isinstance(exc_info.value, InvalidCredentialsError)

    @pytest.mark.asyncio
    async def test_sign_up_upserts_profile(self):
        client, query = _mock_client(data=[{"id": "u1", "name": "Ada"}])
        client.auth.sign_up = AsyncMock(
            return_value=MagicMock(user=_auth_user(), session=MagicMock())
        )
        gw = SupabaseGateway("https://x.supabase.co", "key", client=client)

        user = await gw.sign_up("Ada", "ada@example.com", "pw")

        assert user.name == "Ada"
        upserted = query.upsert.call_args.args[0]
        assert upserted["id"] == "u1"
        assert upserted["name"] == "Ada"

    @pytest.mark.asyncio
    async def test_sign_up_requiring_confirmation(self):
        client, _ = _mock_client()
        client.auth.sign_up = AsyncMock(return_value=MagicMock(user=_auth_user(), session=None))
        gw = SupabaseGateway("https://x.supabase.co", "key", client=client)
        with pytest.raises(AuthError, match="confirm"):
            await gw.sign_up("Ada", "ada@example.com", "pw")

    @pytest.mark.asyncio
    async def test_sign_out_clears_user_even_on_failure(self):
        client, _ = _mock_client(data=[{"id": "u1", "name": "Ada"}])
        client.auth.sign_in_with_password = AsyncMock(return_value=MagicMock(user=_auth_user()))
        client.auth.sign_out = AsyncMock(side_effect=RuntimeError("offline"))
        client.auth.get_session = AsyncMock(return_value=None)
        gw = SupabaseGateway("https://x.supabase.co", "key", client=client)
        await gw.sign_in("ada@example.com", "pw")

        with pytest.raises(AuthError):
            await gw.sign_out()
        assert await gw.current_user() is None

    @pytest.mark.asyncio
    async def test_current_user_restores_session(self):
        client, _ = _mock_client(data=[{"id": "u1", "name": "Ada"}])
        client.auth.get_session = AsyncMock(return_value=MagicMock(user=_auth_user()))
        gw = SupabaseGateway("https://x.supabase.co", "key", client=client)
        user = await gw.current_user()
        assert user is not None and user.id == "u1"
