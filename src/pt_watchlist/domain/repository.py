"""Repository Protocol for watchlist storage."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pt_common.enums import Exchange
from src.pt_watchlist.domain.models import WatchlistItem


class WatchlistRepositoryProtocol(Protocol):
    async def add(self, db: AsyncSession, item: WatchlistItem) -> WatchlistItem:
        """Raises DuplicateWatchlistEntryError on (user, symbol, exchange) clash."""
        ...

    async def remove(
        self, db: AsyncSession, user_id: str, stock_symbol: str, exchange: Exchange
    ) -> bool:
        """True if a row was deleted."""
        ...

    async def list(self, db: AsyncSession, user_id: str) -> list[WatchlistItem]:
        """Newest first."""
        ...

    async def count(self, db: AsyncSession, user_id: str) -> int: ...

    async def exists(
        self, db: AsyncSession, user_id: str, stock_symbol: str, exchange: Exchange
    ) -> bool: ...
