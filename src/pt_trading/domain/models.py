"""Domain models for pt_trading.

An Order is built once at the API boundary and is valid by construction;
everything downstream trusts it.
"""

import re
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import TypeVar

from src.pt_common.enums import Exchange, OrderSide, ProductType
from src.pt_common.errors import InvalidOrderError
from src.pt_wallet.domain.models import Holding, Transaction, Wallet

MAX_ORDER_QUANTITY = 1_000_000
_SYMBOL_RE = re.compile(r"^[A-Z0-9&._-]{1,32}$")

E = TypeVar("E", bound=Enum)


def _coerce(enum_cls: type[E], value: E | str) -> E:
    if isinstance(value, enum_cls):
        return value
    return enum_cls(str(value).strip().upper())


@dataclass(frozen=True)
class Order:
    side: OrderSide
    stock_symbol: str
    exchange: Exchange
    quantity: int
    product_type: ProductType
    stock_name: str = ""

    def __post_init__(self) -> None:
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise InvalidOrderError("quantity must be a whole number")
        if self.quantity <= 0:
            raise InvalidOrderError("quantity must be positive")
        if self.quantity > MAX_ORDER_QUANTITY:
            raise InvalidOrderError(f"quantity must not exceed {MAX_ORDER_QUANTITY}")
        if not _SYMBOL_RE.match(self.stock_symbol):
            raise InvalidOrderError(f"invalid stock symbol: {self.stock_symbol!r}")

    @classmethod
    def create(
        cls,
        side: OrderSide | str,
        stock_symbol: str,
        exchange: Exchange | str,
        quantity: int,
        product_type: ProductType | str,
        stock_name: str | None = None,
    ) -> "Order":
        """Normalize raw values (case, enum strings) and validate."""
        try:
            return cls(
                side=_coerce(OrderSide, side),
                stock_symbol=stock_symbol.strip().upper(),
                exchange=_coerce(Exchange, exchange),
                quantity=quantity,
                product_type=_coerce(ProductType, product_type),
                stock_name=(stock_name or "").strip(),
            )
        except ValueError as exc:
            raise InvalidOrderError(str(exc)) from exc

    @property
    def is_buy(self) -> bool:
        return self.side == OrderSide.BUY


@dataclass
class ExecutionResult:
    transaction: Transaction
    wallet: Wallet
    holding: Holding | None       # None once a sell closes the position
    realized_pnl: Decimal | None
