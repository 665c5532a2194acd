"""Repository Protocol for the ledger store (wallets, holdings, transactions).

Unit tests inject an in-memory implementation. The caller owns the
transaction: nothing here commits.
"""

from datetime import datetime
from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pt_common.enums import Exchange, OrderSide, ProductType
from src.pt_wallet.domain.models import Holding, Transaction, Wallet


class LedgerRepositoryProtocol(Protocol):
    # -- wallets --
    async def get_wallet(self, db: AsyncSession, user_id: str) -> Wallet | None: ...

    async def get_or_create_wallet(
        self, db: AsyncSession, user_id: str, initial_cash: Decimal
    ) -> Wallet: ...

    async def lock_wallet(self, db: AsyncSession, user_id: str) -> Wallet | None:
        """SELECT ... FOR UPDATE on the wallet row."""
        ...

    async def save_wallet(self, db: AsyncSession, wallet: Wallet) -> Wallet:
        """Write cash/margin/pnl if the stored version still equals wallet.version.

        Returns the stored wallet with its bumped version.
        Raises LedgerConflictError when the version moved underneath us.
        """
        ...

    # -- holdings --
    async def get_holding(
        self,
        db: AsyncSession,
        user_id: str,
        stock_symbol: str,
        exchange: Exchange,
        product_type: ProductType,
        for_update: bool = False,
    ) -> Holding | None: ...

    async def insert_holding(self, db: AsyncSession, holding: Holding) -> Holding: ...

    async def update_holding(
        self, db: AsyncSession, holding: Holding, expected_quantity: int
    ) -> Holding:
        """Raises LedgerConflictError if the stored quantity is not expected_quantity."""
        ...

    async def delete_holding(
        self, db: AsyncSession, holding: Holding, expected_quantity: int
    ) -> None: ...

    async def list_holdings(
        self,
        db: AsyncSession,
        user_id: str,
        product_type: ProductType | None = None,
        offset: int | None = None,
        limit: int | None = None,
    ) -> list[Holding]: ...

    async def count_holdings(
        self, db: AsyncSession, user_id: str, product_type: ProductType | None = None
    ) -> int: ...

    async def list_stale_intraday_holdings(
        self, db: AsyncSession, user_id: str, before: datetime
    ) -> list[Holding]:
        """MIS holdings whose last buy happened before `before`."""
        ...

    # -- transactions --
    async def insert_transaction(self, db: AsyncSession, txn: Transaction) -> Transaction: ...

    async def list_transactions(
        self,
        db: AsyncSession,
        user_id: str,
        offset: int,
        limit: int,
        side: OrderSide | None = None,
        stock_symbol: str | None = None,
    ) -> list[Transaction]:
        """Newest first."""
        ...

    async def count_transactions(
        self,
        db: AsyncSession,
        user_id: str,
        side: OrderSide | None = None,
        stock_symbol: str | None = None,
    ) -> int: ...
