"""Domain models for pt_wallet — pure dataclasses, no SQLAlchemy dependency.

All amounts are Decimal rupees (see pt_common.money for quantization).
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from src.pt_common.enums import Exchange, OrderSide, ProductType, TransactionStatus
from src.pt_common.money import ZERO


@dataclass
class Wallet:
    user_id: str
    virtual_cash: Decimal
    mis_margin_used: Decimal = ZERO
    realized_pnl: Decimal = ZERO      # cumulative, all products
    currency: str = "INR"
    version: int = 0                  # compare-and-swap counter
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class Holding:
    user_id: str
    stock_symbol: str
    exchange: Exchange
    product_type: ProductType
    quantity: int
    total_invested: Decimal           # cost basis of the open quantity
    average_price: Decimal
    stock_name: str = ""
    margin_used: Decimal = ZERO       # MIS only: margin blocked by this position
    last_price: Decimal | None = None
    trade_date: datetime | None = None
    id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.stock_symbol, self.exchange.value, self.product_type.value)

    @property
    def instrument(self) -> tuple[str, str]:
        return (self.stock_symbol, self.exchange.value)


@dataclass
class Transaction:
    """Immutable record of one executed order. Never updated after insert."""

    user_id: str
    side: OrderSide
    product_type: ProductType
    stock_symbol: str
    exchange: Exchange
    quantity: int
    price: Decimal
    total_amount: Decimal             # quantity x price
    net_amount: Decimal               # cash debited (BUY) or credited (SELL)
    balance_after: Decimal
    stock_name: str = ""
    realized_pnl: Decimal | None = None
    status: TransactionStatus = TransactionStatus.EXECUTED
    is_auto_square_off: bool = False
    executed_at: datetime | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
