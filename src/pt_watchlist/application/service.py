"""WatchlistApplicationService — add/remove/list with live prices.

Prices are best effort: a provider outage returns the list without prices
instead of failing the read.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.pt_common.enums import Exchange
from src.pt_common.errors import (
    DuplicateWatchlistEntryError,
    PriceUnavailableError,
    WatchlistItemNotFoundError,
    WatchlistLimitExceededError,
)
from src.pt_market.domain.repository import PriceOracleProtocol
from src.pt_watchlist.application.schemas import (
    AddWatchlistRequest,
    WatchlistCountResponse,
    WatchlistItemResponse,
    WatchlistResponse,
)
from src.pt_watchlist.domain.models import WatchlistItem
from src.pt_watchlist.domain.repository import WatchlistRepositoryProtocol

logger = logging.getLogger(__name__)


class WatchlistApplicationService:
    def __init__(
        self,
        repo: WatchlistRepositoryProtocol,
        oracle: PriceOracleProtocol,
        max_items: int = 50,
    ) -> None:
        self._repo = repo
        self._oracle = oracle
        self._max_items = max_items

    async def add(
        self, db: AsyncSession, user_id: str, req: AddWatchlistRequest
    ) -> WatchlistItemResponse:
        symbol = req.stock_symbol.strip().upper()
        exchange = Exchange(req.exchange)
        try:
            if await self._repo.exists(db, user_id, symbol, exchange):
                raise DuplicateWatchlistEntryError(symbol, exchange.value)
            if await self._repo.count(db, user_id) >= self._max_items:
                raise WatchlistLimitExceededError(self._max_items)
            item = await self._repo.add(
                db,
                WatchlistItem(
                    user_id=user_id,
                    stock_symbol=symbol,
                    exchange=exchange,
                    stock_name=(req.stock_name or symbol).strip(),
                    isin=req.isin,
                ),
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return WatchlistItemResponse.from_domain(item)

    async def remove(
        self, db: AsyncSession, user_id: str, stock_symbol: str, exchange: Exchange
    ) -> None:
        symbol = stock_symbol.strip().upper()
        try:
            removed = await self._repo.remove(db, user_id, symbol, exchange)
            if not removed:
                raise WatchlistItemNotFoundError(symbol, exchange.value)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    async def list(self, db: AsyncSession, user_id: str) -> WatchlistResponse:
        items = await self._repo.list(db, user_id)
        responses = [WatchlistItemResponse.from_domain(i) for i in items]
        if not items:
            return WatchlistResponse(items=[], count=0, prices_available=True)

        try:
            quotes = await self._oracle.get_quotes(
                [(i.stock_symbol, i.exchange.value) for i in items]
            )
        except PriceUnavailableError as exc:
            logger.warning("Watchlist prices unavailable for user %s: %s", user_id, exc.message)
            return WatchlistResponse(items=responses, count=len(items), prices_available=False)

        for resp in responses:
            quote = quotes.get((resp.stock_symbol, resp.exchange))
            if quote is not None:
                resp.last_price = quote.last_price
                resp.previous_close = quote.previous_close
                resp.day_change = quote.day_change
        return WatchlistResponse(items=responses, count=len(items), prices_available=True)

    async def count(self, db: AsyncSession, user_id: str) -> WatchlistCountResponse:
        return WatchlistCountResponse(
            count=await self._repo.count(db, user_id), limit=self._max_items
        )
