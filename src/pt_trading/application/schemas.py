"""Pydantic request/response schemas for pt_trading API.

Order bodies accept the web client's camelCase keys (stockSymbol,
productType, stockName) as well as snake_case.
"""

from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from src.pt_common.enums import OrderSide
from src.pt_trading.domain.models import ExecutionResult, Order
from src.pt_wallet.application.schemas import TransactionItem
from src.pt_wallet.domain.models import Holding


class OrderRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    stock_symbol: str = Field(..., alias="stockSymbol", min_length=1, max_length=32)
    exchange: Literal["NSE", "BSE"] = "NSE"
    quantity: int = Field(..., gt=0)
    product_type: Literal["CNC", "MIS"] = Field("CNC", alias="productType")
    stock_name: str | None = Field(None, alias="stockName", max_length=255)

    def to_order(self, side: OrderSide) -> Order:
        return Order.create(
            side=side,
            stock_symbol=self.stock_symbol,
            exchange=self.exchange,
            quantity=self.quantity,
            product_type=self.product_type,
            stock_name=self.stock_name,
        )


class HoldingItem(BaseModel):
    stock_symbol: str
    stock_name: str
    exchange: str
    product_type: str
    quantity: int
    average_price: Decimal
    total_invested: Decimal
    margin_used: Decimal
    last_price: Decimal | None

    @classmethod
    def from_domain(cls, h: Holding) -> "HoldingItem":
        return cls(
            stock_symbol=h.stock_symbol,
            stock_name=h.stock_name,
            exchange=h.exchange.value,
            product_type=h.product_type.value,
            quantity=h.quantity,
            average_price=h.average_price,
            total_invested=h.total_invested,
            margin_used=h.margin_used,
            last_price=h.last_price,
        )


class WalletState(BaseModel):
    virtual_cash: Decimal
    mis_margin_used: Decimal
    realized_pnl: Decimal


class ExecutionResponse(BaseModel):
    transaction: TransactionItem
    wallet: WalletState
    holding: HoldingItem | None
    realized_pnl: Decimal | None

    @classmethod
    def from_result(cls, result: ExecutionResult) -> "ExecutionResponse":
        return cls(
            transaction=TransactionItem.from_domain(result.transaction),
            wallet=WalletState(
                virtual_cash=result.wallet.virtual_cash,
                mis_margin_used=result.wallet.mis_margin_used,
                realized_pnl=result.wallet.realized_pnl,
            ),
            holding=HoldingItem.from_domain(result.holding) if result.holding else None,
            realized_pnl=result.realized_pnl,
        )


class PageInfo(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int

    @classmethod
    def of(cls, page: int, limit: int, total: int) -> "PageInfo":
        return cls(page=page, limit=limit, total=total, total_pages=-(-total // limit))


class PortfolioResponse(BaseModel):
    cnc: list[HoldingItem]
    mis: list[HoldingItem]
    pagination: PageInfo
    stale_intraday_symbols: list[str]
    warning: str | None = None


class TransactionListResponse(BaseModel):
    items: list[TransactionItem]
    pagination: PageInfo


class SquaredOffPosition(BaseModel):
    stock_symbol: str
    exchange: str
    quantity: int
    price: Decimal
    realized_pnl: Decimal | None
    transaction_id: str


class SquareOffFailure(BaseModel):
    stock_symbol: str
    exchange: str
    code: int
    message: str


class SquareOffReport(BaseModel):
    squared_off_count: int
    positions: list[SquaredOffPosition]
    errors: list[SquareOffFailure]
