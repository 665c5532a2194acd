"""Automatic square-off of MIS positions whose trading day has ended.

Intraday positions must be closed by the cutoff. An MIS holding is due once
its trading day has ended: it was bought before today (market time), or it
was bought today and the cutoff has passed. Carried positions are sold at the
previous close (or the last price when there is none), today's at the last
traded price, and without any quote at the ledger's last price. The
transactions are flagged is_auto_square_off. One failing position does not stop the others.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from decimal import Decimal
from zoneinfo import ZoneInfo

from sqlalchemy.ext.asyncio import AsyncSession

from src.pt_common.datetime_utils import start_of_market_day, utc_now
from src.pt_common.enums import OrderSide
from src.pt_common.errors import AppError, PriceUnavailableError
from src.pt_market.domain.models import Quote
from src.pt_market.domain.repository import PriceOracleProtocol
from src.pt_trading.application.schemas import (
    SquaredOffPosition,
    SquareOffFailure,
    SquareOffReport,
)
from src.pt_trading.domain.models import Order
from src.pt_trading.engine.execution import OrderExecutionEngine
from src.pt_wallet.domain.models import Holding
from src.pt_wallet.domain.repository import LedgerRepositoryProtocol

logger = logging.getLogger(__name__)


def square_off_price(
    holding: Holding, quote: Quote | None, carried: bool = True
) -> Decimal | None:
    if quote is None:
        return holding.last_price
    if carried:
        return quote.previous_close or quote.last_price
    return quote.last_price


class IntradaySquareOff:
    def __init__(
        self,
        engine: OrderExecutionEngine,
        repo: LedgerRepositoryProtocol,
        oracle: PriceOracleProtocol,
        tz: ZoneInfo,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._engine = engine
        self._repo = repo
        self._oracle = oracle
        self._tz = tz
        self._clock = clock

    async def stale_positions(self, db: AsyncSession, user_id: str) -> list[Holding]:
        """MIS holdings due for square-off now."""
        now = self._clock()
        before = start_of_market_day(now, self._tz)
        if self._engine.policy.is_past_cutoff(now):
            before += timedelta(days=1)
        return await self._repo.list_stale_intraday_holdings(db, user_id, before)

    async def square_off_stale(self, db: AsyncSession, user_id: str) -> SquareOffReport:
        stale = await self.stale_positions(db, user_id)
        if not stale:
            return SquareOffReport(squared_off_count=0, positions=[], errors=[])

        try:
            quotes = await self._oracle.get_quotes([h.instrument for h in stale])
        except PriceUnavailableError as exc:
            logger.warning("No quotes for square-off, using last traded prices: %s", exc.message)
            quotes = {}

        today = start_of_market_day(self._clock(), self._tz)
        positions: list[SquaredOffPosition] = []
        errors: list[SquareOffFailure] = []
        for holding in stale:
            carried = holding.trade_date is None or holding.trade_date < today
            price = square_off_price(holding, quotes.get(holding.instrument), carried)
            try:
                if price is None:
                    raise PriceUnavailableError(holding.stock_symbol, "no close or last price")
                order = Order(
                    side=OrderSide.SELL,
                    stock_symbol=holding.stock_symbol,
                    exchange=holding.exchange,
                    quantity=holding.quantity,
                    product_type=holding.product_type,
                    stock_name=holding.stock_name,
                )
                result = await self._engine.execute(
                    db, user_id, order, price=price, auto_square_off=True
                )
            except AppError as exc:
                logger.warning(
                    "Square-off of %s for user %s failed: %s",
                    holding.stock_symbol,
                    user_id,
                    exc.message,
                )
                errors.append(
                    SquareOffFailure(
                        stock_symbol=holding.stock_symbol,
                        exchange=holding.exchange.value,
                        code=exc.code,
                        message=exc.message,
                    )
                )
                continue
            positions.append(
                SquaredOffPosition(
                    stock_symbol=holding.stock_symbol,
                    exchange=holding.exchange.value,
                    quantity=holding.quantity,
                    price=price,
                    realized_pnl=result.realized_pnl,
                    transaction_id=result.transaction.id,
                )
            )

        logger.info(
            "Square-off for user %s: %d closed, %d failed", user_id, len(positions), len(errors)
        )
        return SquareOffReport(
            squared_off_count=len(positions), positions=positions, errors=errors
        )
