"""Pydantic response schemas for pt_wallet API.

Decimal fields serialize as JSON strings (model_dump(mode="json")) so no
precision is lost between the ledger and the client.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from src.pt_wallet.domain.models import Transaction


class BalanceResponse(BaseModel):
    user_id: str
    currency: str
    virtual_cash: Decimal
    virtual_cash_display: str
    mis_margin_used: Decimal
    available_for_cnc: Decimal
    available_for_mis: Decimal
    realized_pnl: Decimal


class HoldingValuation(BaseModel):
    stock_symbol: str
    stock_name: str
    exchange: str
    product_type: str
    quantity: int
    average_price: Decimal
    total_invested: Decimal
    margin_used: Decimal
    current_price: Decimal | None
    previous_close: Decimal | None
    current_value: Decimal
    unrealized_pnl: Decimal
    unrealized_pnl_percent: Decimal
    day_pnl: Decimal
    is_stale: bool
    trade_date: datetime | None = None


class WalletSummary(BaseModel):
    user_id: str
    currency: str
    virtual_cash: Decimal
    mis_margin_used: Decimal
    realized_pnl: Decimal
    holdings_count: int
    total_invested: Decimal
    current_value: Decimal
    total_pnl: Decimal
    total_pnl_percent: Decimal
    day_pnl: Decimal
    day_pnl_percent: Decimal
    net_worth: Decimal
    net_worth_display: str
    is_stale: bool
    stale_symbols: list[str]
    as_of: datetime


class TransactionItem(BaseModel):
    id: str
    type: str
    product_type: str
    stock_symbol: str
    stock_name: str
    exchange: str
    quantity: int
    price: Decimal
    total_amount: Decimal
    net_amount: Decimal
    realized_pnl: Decimal | None
    balance_after: Decimal
    status: str
    is_auto_square_off: bool
    executed_at: datetime | None

    @classmethod
    def from_domain(cls, txn: Transaction) -> "TransactionItem":
        return cls(
            id=txn.id,
            type=txn.side.value,
            product_type=txn.product_type.value,
            stock_symbol=txn.stock_symbol,
            stock_name=txn.stock_name,
            exchange=txn.exchange.value,
            quantity=txn.quantity,
            price=txn.price,
            total_amount=txn.total_amount,
            net_amount=txn.net_amount,
            realized_pnl=txn.realized_pnl,
            balance_after=txn.balance_after,
            status=txn.status.value,
            is_auto_square_off=txn.is_auto_square_off,
            executed_at=txn.executed_at,
        )


class WalletDetails(BaseModel):
    summary: WalletSummary
    initial_balance: Decimal
    holdings: list[HoldingValuation]
    recent_transactions: list[TransactionItem]
