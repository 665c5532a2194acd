"""LedgerRepository — concrete implementation of LedgerRepositoryProtocol.

All queries use raw text() SQL. Wallet writes are a compare-and-swap on
`version`; holding writes compare the quantity read under the row lock. Zero
rows updated means another writer got there first (LedgerConflictError).

Transaction ownership: the CALLER (execution engine or application service)
commits or rolls back.
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL for optional filters.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pt_common.enums import Exchange, OrderSide, ProductType, TransactionStatus
from src.pt_common.errors import InternalError, LedgerConflictError
from src.pt_wallet.domain.models import Holding, Transaction, Wallet

# ---------------------------------------------------------------------------
# SQL: wallets
# ---------------------------------------------------------------------------

_WALLET_COLUMNS = """
    user_id, virtual_cash, mis_margin_used, realized_pnl, currency, version,
    created_at, updated_at
"""

_GET_WALLET_SQL = text(f"SELECT {_WALLET_COLUMNS} FROM wallets WHERE user_id = :user_id")

_LOCK_WALLET_SQL = text(
    f"SELECT {_WALLET_COLUMNS} FROM wallets WHERE user_id = :user_id FOR UPDATE"
)

_CREATE_WALLET_SQL = text(f"""
    INSERT INTO wallets (user_id, virtual_cash, currency, mis_margin_used, realized_pnl, version)
    VALUES (:user_id, :virtual_cash, :currency, 0, 0, 0)
    ON CONFLICT (user_id) DO UPDATE SET updated_at = wallets.updated_at
    RETURNING {_WALLET_COLUMNS}
""")

_SAVE_WALLET_SQL = text(f"""
    UPDATE wallets
    SET virtual_cash = :virtual_cash,
        mis_margin_used = :mis_margin_used,
        realized_pnl = :realized_pnl,
        version = version + 1,
        updated_at = NOW()
    WHERE user_id = :user_id AND version = :version
    RETURNING {_WALLET_COLUMNS}
""")

# ---------------------------------------------------------------------------
# SQL: holdings
# ---------------------------------------------------------------------------

_HOLDING_COLUMNS = """
    id, user_id, stock_symbol, stock_name, exchange, product_type, quantity,
    total_invested, average_price, margin_used, last_price, trade_date,
    created_at, updated_at
"""

_HOLDING_KEY = """
    user_id = :user_id AND stock_symbol = :stock_symbol
    AND exchange = :exchange AND product_type = :product_type
"""

_GET_HOLDING_SQL = text(f"SELECT {_HOLDING_COLUMNS} FROM holdings WHERE {_HOLDING_KEY}")

_LOCK_HOLDING_SQL = text(
    f"SELECT {_HOLDING_COLUMNS} FROM holdings WHERE {_HOLDING_KEY} FOR UPDATE"
)

_INSERT_HOLDING_SQL = text(f"""
    INSERT INTO holdings
        (user_id, stock_symbol, stock_name, exchange, product_type, quantity,
         total_invested, average_price, margin_used, last_price, trade_date)
    VALUES
        (:user_id, :stock_symbol, :stock_name, :exchange, :product_type, :quantity,
         :total_invested, :average_price, :margin_used, :last_price, :trade_date)
    RETURNING {_HOLDING_COLUMNS}
""")

_UPDATE_HOLDING_SQL = text(f"""
    UPDATE holdings
    SET quantity = :quantity,
        total_invested = :total_invested,
        average_price = :average_price,
        margin_used = :margin_used,
        last_price = :last_price,
        trade_date = :trade_date,
        stock_name = COALESCE(NULLIF(:stock_name, ''), stock_name),
        updated_at = NOW()
    WHERE {_HOLDING_KEY} AND quantity = :expected_quantity
    RETURNING {_HOLDING_COLUMNS}
""")

_DELETE_HOLDING_SQL = text(f"""
    DELETE FROM holdings
    WHERE {_HOLDING_KEY} AND quantity = :expected_quantity
    RETURNING id
""")

_LIST_HOLDINGS_SQL = text(f"""
    SELECT {_HOLDING_COLUMNS}
    FROM holdings
    WHERE user_id = :user_id
      AND (CAST(:product_type AS TEXT) IS NULL OR product_type = CAST(:product_type AS TEXT))
    ORDER BY updated_at DESC, stock_symbol
    LIMIT :limit OFFSET :offset
""")

_COUNT_HOLDINGS_SQL = text("""
    SELECT COUNT(*) FROM holdings
    WHERE user_id = :user_id
      AND (CAST(:product_type AS TEXT) IS NULL OR product_type = CAST(:product_type AS TEXT))
""")

_LIST_STALE_MIS_SQL = text(f"""
    SELECT {_HOLDING_COLUMNS}
    FROM holdings
    WHERE user_id = :user_id AND product_type = 'MIS' AND trade_date < :before
    ORDER BY trade_date
""")

# ---------------------------------------------------------------------------
# SQL: transactions
# ---------------------------------------------------------------------------

_TXN_COLUMNS = """
    id, user_id, type, product_type, stock_symbol, stock_name, exchange,
    quantity, price, total_amount, net_amount, realized_pnl, balance_after,
    status, is_auto_square_off, executed_at
"""

_INSERT_TXN_SQL = text(f"""
    INSERT INTO transactions
        (id, user_id, type, product_type, stock_symbol, stock_name, exchange,
         quantity, price, total_amount, net_amount, realized_pnl, balance_after,
         status, is_auto_square_off)
    VALUES
        (:id, :user_id, :type, :product_type, :stock_symbol, :stock_name, :exchange,
         :quantity, :price, :total_amount, :net_amount, :realized_pnl, :balance_after,
         :status, :is_auto_square_off)
    RETURNING {_TXN_COLUMNS}
""")

_TXN_FILTER = """
    user_id = :user_id
    AND (CAST(:type AS TEXT) IS NULL OR type = CAST(:type AS TEXT))
    AND (CAST(:stock_symbol AS TEXT) IS NULL OR stock_symbol = CAST(:stock_symbol AS TEXT))
"""

_LIST_TXN_SQL = text(f"""
    SELECT {_TXN_COLUMNS}
    FROM transactions
    WHERE {_TXN_FILTER}
    ORDER BY executed_at DESC, id DESC
    LIMIT :limit OFFSET :offset
""")

_COUNT_TXN_SQL = text(f"SELECT COUNT(*) FROM transactions WHERE {_TXN_FILTER}")


def _row_to_wallet(row: object) -> Wallet:
    return Wallet(
        user_id=str(row.user_id),  # type: ignore[attr-defined]
        virtual_cash=row.virtual_cash,  # type: ignore[attr-defined]
        mis_margin_used=row.mis_margin_used,  # type: ignore[attr-defined]
        realized_pnl=row.realized_pnl,  # type: ignore[attr-defined]
        currency=row.currency,  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_holding(row: object) -> Holding:
    return Holding(
        id=str(row.id),  # type: ignore[attr-defined]
        user_id=str(row.user_id),  # type: ignore[attr-defined]
        stock_symbol=row.stock_symbol,  # type: ignore[attr-defined]
        stock_name=row.stock_name,  # type: ignore[attr-defined]
        exchange=Exchange(row.exchange),  # type: ignore[attr-defined]
        product_type=ProductType(row.product_type),  # type: ignore[attr-defined]
        quantity=row.quantity,  # type: ignore[attr-defined]
        total_invested=row.total_invested,  # type: ignore[attr-defined]
        average_price=row.average_price,  # type: ignore[attr-defined]
        margin_used=row.margin_used,  # type: ignore[attr-defined]
        last_price=row.last_price,  # type: ignore[attr-defined]
        trade_date=row.trade_date,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_transaction(row: object) -> Transaction:
    return Transaction(
        id=str(row.id),  # type: ignore[attr-defined]
        user_id=str(row.user_id),  # type: ignore[attr-defined]
        side=OrderSide(row.type),  # type: ignore[attr-defined]
        product_type=ProductType(row.product_type),  # type: ignore[attr-defined]
        stock_symbol=row.stock_symbol,  # type: ignore[attr-defined]
        stock_name=row.stock_name,  # type: ignore[attr-defined]
        exchange=Exchange(row.exchange),  # type: ignore[attr-defined]
        quantity=row.quantity,  # type: ignore[attr-defined]
        price=row.price,  # type: ignore[attr-defined]
        total_amount=row.total_amount,  # type: ignore[attr-defined]
        net_amount=row.net_amount,  # type: ignore[attr-defined]
        realized_pnl=row.realized_pnl,  # type: ignore[attr-defined]
        balance_after=row.balance_after,  # type: ignore[attr-defined]
        status=TransactionStatus(row.status),  # type: ignore[attr-defined]
        is_auto_square_off=row.is_auto_square_off,  # type: ignore[attr-defined]
        executed_at=row.executed_at,  # type: ignore[attr-defined]
    )


def _key_params(user_id: str, stock_symbol: str, exchange: Exchange, product_type: ProductType) -> dict[str, str]:
    return {
        "user_id": user_id,
        "stock_symbol": stock_symbol,
        "exchange": exchange.value,
        "product_type": product_type.value,
    }


def _holding_params(holding: Holding) -> dict[str, object]:
    return {
        **_key_params(holding.user_id, holding.stock_symbol, holding.exchange, holding.product_type),
        "stock_name": holding.stock_name,
        "quantity": holding.quantity,
        "total_invested": holding.total_invested,
        "average_price": holding.average_price,
        "margin_used": holding.margin_used,
        "last_price": holding.last_price,
        "trade_date": holding.trade_date,
    }


class LedgerRepository:
    """Concrete repository. Every write is guarded at the SQL level."""

    async def get_wallet(self, db: AsyncSession, user_id: str) -> Wallet | None:
        row = (await db.execute(_GET_WALLET_SQL, {"user_id": user_id})).fetchone()
        return _row_to_wallet(row) if row else None

    async def get_or_create_wallet(
        self, db: AsyncSession, user_id: str, initial_cash: Decimal
    ) -> Wallet:
        existing = await self.get_wallet(db, user_id)
        if existing is not None:
            return existing
        row = (
            await db.execute(
                _CREATE_WALLET_SQL,
                {"user_id": user_id, "virtual_cash": initial_cash, "currency": "INR"},
            )
        ).fetchone()
        if row is None:
            raise InternalError("Wallet upsert returned no rows")
        return _row_to_wallet(row)

    async def lock_wallet(self, db: AsyncSession, user_id: str) -> Wallet | None:
        row = (await db.execute(_LOCK_WALLET_SQL, {"user_id": user_id})).fetchone()
        return _row_to_wallet(row) if row else None

    async def save_wallet(self, db: AsyncSession, wallet: Wallet) -> Wallet:
        row = (
            await db.execute(
                _SAVE_WALLET_SQL,
                {
                    "user_id": wallet.user_id,
                    "virtual_cash": wallet.virtual_cash,
                    "mis_margin_used": wallet.mis_margin_used,
                    "realized_pnl": wallet.realized_pnl,
                    "version": wallet.version,
                },
            )
        ).fetchone()
        if row is None:
            raise LedgerConflictError(wallet.user_id)
        return _row_to_wallet(row)

    async def get_holding(
        self,
        db: AsyncSession,
        user_id: str,
        stock_symbol: str,
        exchange: Exchange,
        product_type: ProductType,
        for_update: bool = False,
    ) -> Holding | None:
        sql = _LOCK_HOLDING_SQL if for_update else _GET_HOLDING_SQL
        row = (
            await db.execute(sql, _key_params(user_id, stock_symbol, exchange, product_type))
        ).fetchone()
        return _row_to_holding(row) if row else None

    async def insert_holding(self, db: AsyncSession, holding: Holding) -> Holding:
        row = (await db.execute(_INSERT_HOLDING_SQL, _holding_params(holding))).fetchone()
        if row is None:
            raise InternalError("Holding insert returned no rows")
        return _row_to_holding(row)

    async def update_holding(
        self, db: AsyncSession, holding: Holding, expected_quantity: int
    ) -> Holding:
        params = {**_holding_params(holding), "expected_quantity": expected_quantity}
        row = (await db.execute(_UPDATE_HOLDING_SQL, params)).fetchone()
        if row is None:
            raise LedgerConflictError(holding.user_id)
        return _row_to_holding(row)

    async def delete_holding(
        self, db: AsyncSession, holding: Holding, expected_quantity: int
    ) -> None:
        params = {
            **_key_params(holding.user_id, holding.stock_symbol, holding.exchange, holding.product_type),
            "expected_quantity": expected_quantity,
        }
        row = (await db.execute(_DELETE_HOLDING_SQL, params)).fetchone()
        if row is None:
            raise LedgerConflictError(holding.user_id)

    async def list_holdings(
        self,
        db: AsyncSession,
        user_id: str,
        product_type: ProductType | None = None,
        offset: int | None = None,
        limit: int | None = None,
    ) -> list[Holding]:
        result = await db.execute(
            _LIST_HOLDINGS_SQL,
            {
                "user_id": user_id,
                "product_type": product_type.value if product_type else None,
                "offset": offset or 0,
                "limit": limit,  # LIMIT NULL means no limit in PostgreSQL
            },
        )
        return [_row_to_holding(r) for r in result.fetchall()]

    async def count_holdings(
        self, db: AsyncSession, user_id: str, product_type: ProductType | None = None
    ) -> int:
        result = await db.execute(
            _COUNT_HOLDINGS_SQL,
            {"user_id": user_id, "product_type": product_type.value if product_type else None},
        )
        return int(result.scalar_one())

    async def list_stale_intraday_holdings(
        self, db: AsyncSession, user_id: str, before: datetime
    ) -> list[Holding]:
        result = await db.execute(_LIST_STALE_MIS_SQL, {"user_id": user_id, "before": before})
        return [_row_to_holding(r) for r in result.fetchall()]

    async def insert_transaction(self, db: AsyncSession, txn: Transaction) -> Transaction:
        row = (
            await db.execute(
                _INSERT_TXN_SQL,
                {
                    "id": txn.id,
                    "user_id": txn.user_id,
                    "type": txn.side.value,
                    "product_type": txn.product_type.value,
                    "stock_symbol": txn.stock_symbol,
                    "stock_name": txn.stock_name,
                    "exchange": txn.exchange.value,
                    "quantity": txn.quantity,
                    "price": txn.price,
                    "total_amount": txn.total_amount,
                    "net_amount": txn.net_amount,
                    "realized_pnl": txn.realized_pnl,
                    "balance_after": txn.balance_after,
                    "status": txn.status.value,
                    "is_auto_square_off": txn.is_auto_square_off,
                },
            )
        ).fetchone()
        if row is None:
            raise InternalError("Transaction insert returned no rows")
        return _row_to_transaction(row)

    async def list_transactions(
        self,
        db: AsyncSession,
        user_id: str,
        offset: int,
        limit: int,
        side: OrderSide | None = None,
        stock_symbol: str | None = None,
    ) -> list[Transaction]:
        result = await db.execute(
            _LIST_TXN_SQL,
            {
                "user_id": user_id,
                "type": side.value if side else None,
                "stock_symbol": stock_symbol,
                "offset": offset,
                "limit": limit,
            },
        )
        return [_row_to_transaction(r) for r in result.fetchall()]

    async def count_transactions(
        self,
        db: AsyncSession,
        user_id: str,
        side: OrderSide | None = None,
        stock_symbol: str | None = None,
    ) -> int:
        result = await db.execute(
            _COUNT_TXN_SQL,
            {"user_id": user_id, "type": side.value if side else None, "stock_symbol": stock_symbol},
        )
        return int(result.scalar_one())
