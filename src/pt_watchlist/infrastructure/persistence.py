"""WatchlistRepository — raw text() SQL over watchlist_items.

The UNIQUE (user_id, stock_symbol, exchange) constraint is the final guard
against duplicates; the service pre-checks for a friendlier error.
"""

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.pt_common.enums import Exchange
from src.pt_common.errors import DuplicateWatchlistEntryError, InternalError
from src.pt_watchlist.domain.models import WatchlistItem

_COLUMNS = "id, user_id, stock_symbol, stock_name, exchange, isin, added_at"

_INSERT_SQL = text(f"""
    INSERT INTO watchlist_items (user_id, stock_symbol, stock_name, exchange, isin)
    VALUES (:user_id, :stock_symbol, :stock_name, :exchange, :isin)
    RETURNING {_COLUMNS}
""")

_DELETE_SQL = text("""
    DELETE FROM watchlist_items
    WHERE user_id = :user_id AND stock_symbol = :stock_symbol AND exchange = :exchange
    RETURNING id
""")

_LIST_SQL = text(f"""
    SELECT {_COLUMNS} FROM watchlist_items
    WHERE user_id = :user_id
    ORDER BY added_at DESC, stock_symbol
""")

_COUNT_SQL = text("SELECT COUNT(*) FROM watchlist_items WHERE user_id = :user_id")

_EXISTS_SQL = text("""
    SELECT 1 FROM watchlist_items
    WHERE user_id = :user_id AND stock_symbol = :stock_symbol AND exchange = :exchange
""")


def _row_to_item(row: object) -> WatchlistItem:
    return WatchlistItem(
        id=str(row.id),  # type: ignore[attr-defined]
        user_id=str(row.user_id),  # type: ignore[attr-defined]
        stock_symbol=row.stock_symbol,  # type: ignore[attr-defined]
        stock_name=row.stock_name,  # type: ignore[attr-defined]
        exchange=Exchange(row.exchange),  # type: ignore[attr-defined]
        isin=row.isin,  # type: ignore[attr-defined]
        added_at=row.added_at,  # type: ignore[attr-defined]
    )


class WatchlistRepository:
    async def add(self, db: AsyncSession, item: WatchlistItem) -> WatchlistItem:
        try:
            result = await db.execute(
                _INSERT_SQL,
                {
                    "user_id": item.user_id,
                    "stock_symbol": item.stock_symbol,
                    "stock_name": item.stock_name,
                    "exchange": item.exchange.value,
                    "isin": item.isin,
                },
            )
        except IntegrityError as exc:
            raise DuplicateWatchlistEntryError(item.stock_symbol, item.exchange.value) from exc
        row = result.fetchone()
        if row is None:
            raise InternalError("Watchlist insert returned no rows")
        return _row_to_item(row)

    async def remove(
        self, db: AsyncSession, user_id: str, stock_symbol: str, exchange: Exchange
    ) -> bool:
        result = await db.execute(
            _DELETE_SQL,
            {"user_id": user_id, "stock_symbol": stock_symbol, "exchange": exchange.value},
        )
        return result.fetchone() is not None

    async def list(self, db: AsyncSession, user_id: str) -> list[WatchlistItem]:
        result = await db.execute(_LIST_SQL, {"user_id": user_id})
        return [_row_to_item(r) for r in result.fetchall()]

    async def count(self, db: AsyncSession, user_id: str) -> int:
        result = await db.execute(_COUNT_SQL, {"user_id": user_id})
        return int(result.scalar_one())

    async def exists(
        self, db: AsyncSession, user_id: str, stock_symbol: str, exchange: Exchange
    ) -> bool:
        result = await db.execute(
            _EXISTS_SQL,
            {"user_id": user_id, "stock_symbol": stock_symbol, "exchange": exchange.value},
        )
        return result.fetchone() is not None
