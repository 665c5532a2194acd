"""Unit tests for SqlTokenStore with a stubbed session factory."""

from contextlib import asynccontextmanager
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from src.pt_market.domain.models import AccessToken
from src.pt_market.domain.repository import TokenStoreUnavailableError
from src.pt_market.infrastructure.token_store import SqlTokenStore

EXPIRES = datetime(2026, 10, 20, 0, 29, tzinfo=UTC)


def _factory(db: AsyncMock):
    @asynccontextmanager
    async def scope():
        yield db

    return scope


class TestSqlTokenStore:
    async def test_load_empty(self) -> None:
        db = AsyncMock()
        result = MagicMock()
        result.fetchone.return_value = None
        db.execute.return_value = result
        assert await SqlTokenStore(_factory(db)).load() is None

    async def test_load_row(self) -> None:
        db = AsyncMock()
        row = MagicMock()
        row.token = "abc"
        row.expires_at = EXPIRES
        result = MagicMock()
        result.fetchone.return_value = row
        db.execute.return_value = result
        assert await SqlTokenStore(_factory(db)).load() == AccessToken("abc", EXPIRES)

    async def test_save_upserts_singleton(self) -> None:
        db = AsyncMock()
        await SqlTokenStore(_factory(db)).save(AccessToken("abc", EXPIRES))
        sql, params = db.execute.await_args.args
        assert "ON CONFLICT (id)" in str(sql)
        assert params == {"token": "abc", "expires_at": EXPIRES}

    async def test_database_error_is_store_unavailable(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = OperationalError("SELECT", {}, Exception("down"))
        store = SqlTokenStore(_factory(db))
        with pytest.raises(TokenStoreUnavailableError):
            await store.load()
        with pytest.raises(TokenStoreUnavailableError):
            await store.save(AccessToken("abc", EXPIRES))

    async def test_connection_refused_is_store_unavailable(self) -> None:
        @asynccontextmanager
        async def refused():
            raise ConnectionRefusedError("no database")
            yield  # pragma: no cover

        with pytest.raises(TokenStoreUnavailableError):
            await SqlTokenStore(refused).load()
