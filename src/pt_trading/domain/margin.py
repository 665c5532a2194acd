"""MarginPolicy — how much cash an order blocks, and when MIS may trade.

CNC (delivery) pays the full notional. MIS (intraday) blocks notional /
leverage, rounded up to the paisa, and may only be opened on weekdays inside
the intraday window. Selling MIS is always allowed: it only closes exposure.
"""

from datetime import datetime, time
from decimal import Decimal
from zoneinfo import ZoneInfo

from src.pt_common.enums import ProductType
from src.pt_common.errors import InsufficientFundsError, IntradayWindowClosedError
from src.pt_common.money import to_money, to_money_ceil
from src.pt_trading.domain.models import Order
from src.pt_wallet.domain.models import Wallet


class MarginPolicy:
    def __init__(
        self,
        leverage: Decimal,
        market_open: time,
        cutoff: time,
        tz: ZoneInfo,
    ) -> None:
        if leverage <= 0:
            raise ValueError("leverage must be positive")
        self.leverage = leverage
        self.market_open = market_open
        self.cutoff = cutoff
        self.tz = tz

    @property
    def margin_rate(self) -> Decimal:
        return 1 / self.leverage

    def required_funds(self, order: Order, price: Decimal) -> Decimal:
        notional = price * order.quantity
        if order.product_type == ProductType.MIS:
            return to_money_ceil(notional / self.leverage)
        return to_money(notional)

    def ensure_affordable(self, wallet: Wallet, required: Decimal) -> None:
        if wallet.virtual_cash < required:
            raise InsufficientFundsError(required, wallet.virtual_cash)

    def is_past_cutoff(self, now: datetime) -> bool:
        return now.astimezone(self.tz).time() >= self.cutoff

    def is_intraday_window_open(self, now: datetime) -> bool:
        local = now.astimezone(self.tz)
        if local.weekday() >= 5:
            return False
        return self.market_open <= local.time() < self.cutoff

    def ensure_intraday_entry_allowed(self, now: datetime) -> None:
        if not self.is_intraday_window_open(now):
            raise IntradayWindowClosedError(
                f"MIS orders can only be placed on weekdays between "
                f"{self.market_open:%H:%M} and {self.cutoff:%H:%M} {self.tz.key}"
            )

    def buying_power(self, wallet: Wallet, product_type: ProductType) -> Decimal:
        if product_type == ProductType.MIS:
            return to_money(wallet.virtual_cash * self.leverage)
        return wallet.virtual_cash
