"""Shared provider credential with a daily 06:00 expiry.

One CredentialCache lives for the whole process (created in the app lifespan).
get_token() is the only entry point used by the price oracle:

  - a valid token in memory or in the store is returned without an issuer call
  - a missing or expired token triggers exactly one issuer call per process,
    serialized by the cache's lock, and the new token is persisted
  - when the store is unavailable the token is issued and returned uncached;
    every call during the outage issues again

Several processes missing at the same time may each issue; the last write
wins. Groww accepts either token until 06:00 so this is tolerated.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from zoneinfo import ZoneInfo

from src.pt_common.datetime_utils import utc_now
from src.pt_common.errors import TokenUnavailableError
from src.pt_market.domain.expiry import next_token_expiry
from src.pt_market.domain.models import AccessToken
from src.pt_market.domain.repository import (
    TokenIssuerProtocol,
    TokenStoreProtocol,
    TokenStoreUnavailableError,
)

logger = logging.getLogger(__name__)


class CredentialCache:
    def __init__(
        self,
        store: TokenStoreProtocol,
        issuer: TokenIssuerProtocol,
        tz: ZoneInfo,
        clock: Callable[[], datetime] = utc_now,
        refresh_hour: int = 6,
    ) -> None:
        self._store = store
        self._issuer = issuer
        self._tz = tz
        self._clock = clock
        self._refresh_hour = refresh_hour
        self._lock = asyncio.Lock()
        self._current: AccessToken | None = None
        self._rejected: str | None = None

    async def get_token(self) -> str:
        cached = self._current
        if cached is not None and not cached.is_expired(self._clock()):
            logger.debug("Provider token served from memory")
            return cached.token

        async with self._lock:
            now = self._clock()
            # Another waiter may have refreshed while we queued on the lock
            if self._current is not None and not self._current.is_expired(now):
                return self._current.token

            try:
                stored = await self._store.load()
            except TokenStoreUnavailableError as exc:
                logger.warning("Token store unavailable, issuing uncached token: %s", exc)
                return await self._issue()

            if (
                stored is not None
                and not stored.is_expired(now)
                and stored.token != self._rejected
            ):
                logger.debug("Provider token loaded from store, expires %s", stored.expires_at)
                self._current = stored
                return stored.token

            fresh = AccessToken(
                token=await self._issue(),
                expires_at=next_token_expiry(now, self._tz, self._refresh_hour),
            )
            try:
                await self._store.save(fresh)
            except TokenStoreUnavailableError as exc:
                logger.warning("Token store unavailable, new token not cached: %s", exc)
                return fresh.token

            self._current = fresh
            self._rejected = None
            logger.info("New provider token cached, expires %s", fresh.expires_at.isoformat())
            return fresh.token

    def invalidate(self, rejected: str) -> None:
        """Drop a token the provider answered 401 for; the next call reissues."""
        self._rejected = rejected
        if self._current is not None and self._current.token == rejected:
            self._current = None

    async def _issue(self) -> str:
        try:
            return await self._issuer.issue()
        except TokenUnavailableError:
            raise
        except Exception as exc:
            raise TokenUnavailableError(str(exc)) from exc
