"""Pure ledger arithmetic for one executed order. No I/O.

fill_buy / fill_sell take the current wallet and holding and return the
states to persist. Average cost basis is tracked as total_invested so the
weighted mean never drifts through repeated rounding of the average.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal

from src.pt_common.enums import ProductType
from src.pt_common.errors import InsufficientHoldingsError
from src.pt_common.money import ZERO, to_avg_price, to_basis, to_money
from src.pt_trading.domain.models import Order
from src.pt_wallet.domain.models import Holding, Wallet


@dataclass
class Fill:
    wallet: Wallet
    holding: Holding | None        # None: position closed, delete the row
    total_amount: Decimal          # quantity x price
    net_amount: Decimal            # cash moved (debit for BUY, credit for SELL)
    realized_pnl: Decimal | None   # SELL only


def fill_buy(
    wallet: Wallet,
    holding: Holding | None,
    order: Order,
    price: Decimal,
    required: Decimal,
    now: datetime,
) -> Fill:
    """Debit `required` (as computed by MarginPolicy) and grow the position."""
    is_mis = order.product_type == ProductType.MIS
    new_wallet = replace(
        wallet,
        virtual_cash=wallet.virtual_cash - required,
        mis_margin_used=wallet.mis_margin_used + required if is_mis else wallet.mis_margin_used,
    )

    cost = to_basis(price * order.quantity)
    if holding is None:
        new_holding = Holding(
            user_id=wallet.user_id,
            stock_symbol=order.stock_symbol,
            stock_name=order.stock_name,
            exchange=order.exchange,
            product_type=order.product_type,
            quantity=order.quantity,
            total_invested=cost,
            average_price=to_avg_price(cost / order.quantity),
            margin_used=required if is_mis else ZERO,
            last_price=price,
            trade_date=now,
        )
    else:
        quantity = holding.quantity + order.quantity
        invested = holding.total_invested + cost
        new_holding = replace(
            holding,
            stock_name=order.stock_name or holding.stock_name,
            quantity=quantity,
            total_invested=invested,
            average_price=to_avg_price(invested / quantity),
            margin_used=holding.margin_used + required if is_mis else holding.margin_used,
            last_price=price,
            trade_date=now,
        )

    return Fill(
        wallet=new_wallet,
        holding=new_holding,
        total_amount=to_money(price * order.quantity),
        net_amount=required,
        realized_pnl=None,
    )


def fill_sell(
    wallet: Wallet,
    holding: Holding | None,
    order: Order,
    price: Decimal,
) -> Fill:
    """Shrink the position and credit the wallet.

    CNC credits the full proceeds. MIS credits the margin released plus the
    realized P&L; a loss larger than the cash on hand is floored so cash
    never goes negative.
    """
    available = holding.quantity if holding is not None else 0
    if holding is None or order.quantity > available:
        raise InsufficientHoldingsError(order.stock_symbol, order.quantity, available)

    closing = order.quantity == holding.quantity
    if closing:
        cost_released = holding.total_invested
        margin_released = holding.margin_used
    else:
        cost_released = to_basis(holding.total_invested * order.quantity / holding.quantity)
        margin_released = to_money(holding.margin_used * order.quantity / holding.quantity)

    proceeds = to_money(price * order.quantity)
    realized = to_money(proceeds - cost_released)

    if order.product_type == ProductType.MIS:
        credit = max(margin_released + realized, -wallet.virtual_cash)
        mis_margin_used = max(wallet.mis_margin_used - margin_released, ZERO)
    else:
        credit = proceeds
        mis_margin_used = wallet.mis_margin_used

    new_wallet = replace(
        wallet,
        virtual_cash=wallet.virtual_cash + credit,
        mis_margin_used=mis_margin_used,
        realized_pnl=wallet.realized_pnl + realized,
    )
    new_holding = None if closing else replace(
        holding,
        quantity=holding.quantity - order.quantity,
        total_invested=holding.total_invested - cost_released,
        margin_used=holding.margin_used - margin_released,
        last_price=price,
    )
    return Fill(
        wallet=new_wallet,
        holding=new_holding,
        total_amount=proceeds,
        net_amount=credit,
        realized_pnl=realized,
    )
