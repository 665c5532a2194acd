"""TradingApplicationService — thin composition layer over the execution engine.

Order placement commits inside the engine. Portfolio and transaction reads
are read-only and run without an explicit transaction.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from src.pt_common.enums import OrderSide, ProductType
from src.pt_trading.application.schemas import (
    ExecutionResponse,
    HoldingItem,
    OrderRequest,
    PageInfo,
    PortfolioResponse,
    SquareOffReport,
    TransactionListResponse,
)
from src.pt_trading.application.square_off import IntradaySquareOff
from src.pt_trading.engine.execution import OrderExecutionEngine
from src.pt_wallet.application.schemas import TransactionItem
from src.pt_wallet.domain.repository import LedgerRepositoryProtocol


class TradingApplicationService:
    def __init__(
        self,
        engine: OrderExecutionEngine,
        repo: LedgerRepositoryProtocol,
        square_off: IntradaySquareOff,
    ) -> None:
        self._engine = engine
        self._repo = repo
        self._square_off = square_off

    async def buy(self, db: AsyncSession, user_id: str, req: OrderRequest) -> ExecutionResponse:
        result = await self._engine.execute(db, user_id, req.to_order(OrderSide.BUY))
        return ExecutionResponse.from_result(result)

    async def sell(self, db: AsyncSession, user_id: str, req: OrderRequest) -> ExecutionResponse:
        result = await self._engine.execute(db, user_id, req.to_order(OrderSide.SELL))
        return ExecutionResponse.from_result(result)

    async def portfolio(
        self,
        db: AsyncSession,
        user_id: str,
        page: int,
        limit: int,
        product_type: ProductType | None = None,
    ) -> PortfolioResponse:
        total = await self._repo.count_holdings(db, user_id, product_type)
        holdings = await self._repo.list_holdings(
            db, user_id, product_type, offset=(page - 1) * limit, limit=limit
        )
        stale = await self._square_off.stale_positions(db, user_id)
        stale_symbols = sorted({h.stock_symbol for h in stale})
        warning = None
        if stale_symbols:
            warning = (
                f"{len(stale)} intraday position(s) are past the cutoff and still open; "
                "they are closed by the next square-off"
            )
        return PortfolioResponse(
            cnc=[HoldingItem.from_domain(h) for h in holdings if h.product_type == ProductType.CNC],
            mis=[HoldingItem.from_domain(h) for h in holdings if h.product_type == ProductType.MIS],
            pagination=PageInfo.of(page, limit, total),
            stale_intraday_symbols=stale_symbols,
            warning=warning,
        )

    async def transactions(
        self,
        db: AsyncSession,
        user_id: str,
        page: int,
        limit: int,
        side: OrderSide | None = None,
        stock_symbol: str | None = None,
    ) -> TransactionListResponse:
        symbol = stock_symbol.strip().upper() if stock_symbol else None
        total = await self._repo.count_transactions(db, user_id, side, symbol)
        items = await self._repo.list_transactions(
            db, user_id, offset=(page - 1) * limit, limit=limit, side=side, stock_symbol=symbol
        )
        return TransactionListResponse(
            items=[TransactionItem.from_domain(t) for t in items],
            pagination=PageInfo.of(page, limit, total),
        )

    async def square_off(self, db: AsyncSession, user_id: str) -> SquareOffReport:
        return await self._square_off.square_off_stale(db, user_id)
