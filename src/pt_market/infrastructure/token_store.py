"""SqlTokenStore — TokenStoreProtocol on the singleton provider_access_tokens row.

Runs outside any request, so each call opens its own unit of work. Database
and network failures surface as TokenStoreUnavailableError so the credential
cache can fall back to uncached tokens.
"""

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.pt_common.database import session_scope
from src.pt_market.domain.models import AccessToken
from src.pt_market.domain.repository import TokenStoreUnavailableError

_LOAD_SQL = text("SELECT token, expires_at FROM provider_access_tokens WHERE id = 1")

_UPSERT_SQL = text("""
    INSERT INTO provider_access_tokens (id, token, expires_at, updated_at)
    VALUES (1, :token, :expires_at, NOW())
    ON CONFLICT (id) DO UPDATE
    SET token = EXCLUDED.token,
        expires_at = EXCLUDED.expires_at,
        updated_at = NOW()
""")


class SqlTokenStore:
    def __init__(
        self,
        session_factory: Callable[[], AbstractAsyncContextManager[AsyncSession]] = session_scope,
    ) -> None:
        self._session_factory = session_factory

    async def load(self) -> AccessToken | None:
        try:
            async with self._session_factory() as db:
                row = (await db.execute(_LOAD_SQL)).fetchone()
        except (SQLAlchemyError, OSError) as exc:
            raise TokenStoreUnavailableError(str(exc)) from exc
        if row is None:
            return None
        return AccessToken(token=row.token, expires_at=row.expires_at)

    async def save(self, token: AccessToken) -> None:
        try:
            async with self._session_factory() as db:
                await db.execute(
                    _UPSERT_SQL, {"token": token.token, "expires_at": token.expires_at}
                )
        except (SQLAlchemyError, OSError) as exc:
            raise TokenStoreUnavailableError(str(exc)) from exc
