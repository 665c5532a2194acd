"""OrderExecutionEngine — turns a validated Order into one atomic ledger mutation.

Flow per order:
  1. MIS entry window check (buys only)
  2. price fetch from the oracle, outside any lock
  3. per-user lock + wallet row lock
  4. affordability / holdings check, pure fill arithmetic
  5. wallet CAS on version, holding write, transaction append
  6. single commit; any failure rolls the whole unit back

LedgerConflictError (lost CAS race with another process) is retried a bounded
number of times before it reaches the caller. There is no idempotency key: a
client that resubmits after a timeout executes twice.
"""

import logging
from collections.abc import Callable
from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.pt_common.datetime_utils import utc_now
from src.pt_common.enums import ProductType
from src.pt_common.errors import LedgerConflictError, PriceUnavailableError, WalletNotFoundError
from src.pt_common.money import ZERO
from src.pt_market.domain.repository import PriceOracleProtocol
from src.pt_trading.domain.fills import Fill, fill_buy, fill_sell
from src.pt_trading.domain.margin import MarginPolicy
from src.pt_trading.domain.models import ExecutionResult, Order
from src.pt_trading.engine.ledger_lock import UserLedgerLocks
from src.pt_wallet.domain.models import Holding, Transaction, Wallet
from src.pt_wallet.domain.repository import LedgerRepositoryProtocol

logger = logging.getLogger(__name__)


class OrderExecutionEngine:
    def __init__(
        self,
        repo: LedgerRepositoryProtocol,
        oracle: PriceOracleProtocol,
        policy: MarginPolicy,
        locks: UserLedgerLocks | None = None,
        initial_cash: Decimal = Decimal("1000000.00"),
        max_conflict_retries: int = 3,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._repo = repo
        self._oracle = oracle
        self._policy = policy
        self._locks = locks if locks is not None else UserLedgerLocks()
        self._initial_cash = initial_cash
        self._max_conflict_retries = max_conflict_retries
        self._clock = clock

    @property
    def policy(self) -> MarginPolicy:
        return self._policy

    async def execute(
        self,
        db: AsyncSession,
        user_id: str,
        order: Order,
        *,
        price: Decimal | None = None,
        auto_square_off: bool = False,
    ) -> ExecutionResult:
        """Execute `order` at the live price (or `price` when the caller already has one)."""
        if order.is_buy and order.product_type == ProductType.MIS:
            self._policy.ensure_intraday_entry_allowed(self._clock())

        if price is None:
            quote = await self._oracle.get_quote(order.stock_symbol, order.exchange.value)
            price = quote.last_price
        if price <= ZERO:
            raise PriceUnavailableError(order.stock_symbol, "non-positive price")

        async with self._locks.hold(user_id):
            attempt = 0
            while True:
                attempt += 1
                try:
                    result = await self._apply(db, user_id, order, price, auto_square_off)
                    await db.commit()
                except LedgerConflictError:
                    await db.rollback()
                    if attempt > self._max_conflict_retries:
                        logger.error(
                            "Ledger conflict for user %s persisted after %d attempts",
                            user_id,
                            attempt,
                        )
                        raise
                    logger.warning(
                        "Ledger conflict for user %s, retrying (%d/%d)",
                        user_id,
                        attempt,
                        self._max_conflict_retries,
                    )
                    continue
                except Exception:
                    await db.rollback()
                    raise
                break

        logger.info(
            "Executed %s %s %d %s@%s %s for user %s cash_after=%s%s",
            order.side.value,
            order.product_type.value,
            order.quantity,
            order.stock_symbol,
            order.exchange.value,
            price,
            user_id,
            result.wallet.virtual_cash,
            " (auto square-off)" if auto_square_off else "",
        )
        return result

    async def _apply(
        self,
        db: AsyncSession,
        user_id: str,
        order: Order,
        price: Decimal,
        auto_square_off: bool,
    ) -> ExecutionResult:
        wallet = await self._lock_wallet(db, user_id)
        holding = await self._repo.get_holding(
            db, user_id, order.stock_symbol, order.exchange, order.product_type, for_update=True
        )
        now = self._clock()

        fill: Fill
        if order.is_buy:
            required = self._policy.required_funds(order, price)
            self._policy.ensure_affordable(wallet, required)
            fill = fill_buy(wallet, holding, order, price, required, now)
        else:
            fill = fill_sell(wallet, holding, order, price)

        saved_wallet = await self._repo.save_wallet(db, fill.wallet)
        saved_holding = await self._write_holding(db, holding, fill.holding)

        txn = await self._repo.insert_transaction(
            db,
            Transaction(
                user_id=user_id,
                side=order.side,
                product_type=order.product_type,
                stock_symbol=order.stock_symbol,
                stock_name=order.stock_name or (holding.stock_name if holding else ""),
                exchange=order.exchange,
                quantity=order.quantity,
                price=price,
                total_amount=fill.total_amount,
                net_amount=fill.net_amount,
                realized_pnl=fill.realized_pnl,
                balance_after=saved_wallet.virtual_cash,
                is_auto_square_off=auto_square_off,
                executed_at=now,
            ),
        )
        return ExecutionResult(
            transaction=txn,
            wallet=saved_wallet,
            holding=saved_holding,
            realized_pnl=fill.realized_pnl,
        )

    async def _lock_wallet(self, db: AsyncSession, user_id: str) -> Wallet:
        wallet = await self._repo.lock_wallet(db, user_id)
        if wallet is None:
            # Users created before wallets existed get one on first order
            await self._repo.get_or_create_wallet(db, user_id, self._initial_cash)
            wallet = await self._repo.lock_wallet(db, user_id)
        if wallet is None:
            raise WalletNotFoundError(user_id)
        return wallet

    async def _write_holding(
        self, db: AsyncSession, before: Holding | None, after: Holding | None
    ) -> Holding | None:
        if after is None:
            if before is not None:
                await self._repo.delete_holding(db, before, expected_quantity=before.quantity)
            return None
        if before is None:
            return await self._repo.insert_holding(db, after)
        return await self._repo.update_holding(db, after, expected_quantity=before.quantity)
