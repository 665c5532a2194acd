"""PortfolioValuator — read-only mark-to-market of a user's holdings.

One batch quote request covers every holding. Instruments the oracle cannot
price are valued at the last price the ledger saw and flagged stale; a full
oracle outage marks the whole portfolio stale rather than failing the read.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.pt_common.datetime_utils import utc_now
from src.pt_common.enums import ProductType
from src.pt_common.errors import PriceUnavailableError
from src.pt_common.money import ZERO, money_to_display, percent, to_money
from src.pt_market.domain.models import Quote
from src.pt_market.domain.repository import PriceOracleProtocol
from src.pt_wallet.application.schemas import HoldingValuation, WalletSummary
from src.pt_wallet.domain.models import Holding, Wallet
from src.pt_wallet.domain.repository import LedgerRepositoryProtocol

logger = logging.getLogger(__name__)


@dataclass
class Valuation:
    summary: WalletSummary
    holdings: list[HoldingValuation]


def value_holding(holding: Holding, quote: Quote | None) -> HoldingValuation:
    if quote is not None:
        price: Decimal | None = quote.last_price
        previous_close = quote.previous_close
        stale = False
    else:
        price = holding.last_price
        previous_close = None
        stale = True

    if price is None:
        # Never traded through the ledger and no live price: carry at cost
        current_value = to_money(holding.total_invested)
    else:
        current_value = to_money(price * holding.quantity)
    unrealized = current_value - to_money(holding.total_invested)
    day_pnl = (
        to_money(holding.quantity * (price - previous_close))
        if price is not None and previous_close is not None
        else ZERO
    )
    return HoldingValuation(
        stock_symbol=holding.stock_symbol,
        stock_name=holding.stock_name,
        exchange=holding.exchange.value,
        product_type=holding.product_type.value,
        quantity=holding.quantity,
        average_price=holding.average_price,
        total_invested=to_money(holding.total_invested),
        margin_used=holding.margin_used,
        current_price=price,
        previous_close=previous_close,
        current_value=current_value,
        unrealized_pnl=unrealized,
        unrealized_pnl_percent=percent(unrealized, holding.total_invested),
        day_pnl=day_pnl,
        is_stale=stale,
        trade_date=holding.trade_date,
    )


def build_summary(
    wallet: Wallet, valuations: list[HoldingValuation], as_of: datetime
) -> WalletSummary:
    total_invested = sum((v.total_invested for v in valuations), ZERO)
    current_value = sum((v.current_value for v in valuations), ZERO)
    total_pnl = sum((v.unrealized_pnl for v in valuations), ZERO)
    day_pnl = sum((v.day_pnl for v in valuations), ZERO)
    previous_value = sum(
        (to_money(v.previous_close * v.quantity) for v in valuations if v.previous_close is not None),
        ZERO,
    )
    # MIS positions are financed 4:1, only margin plus P&L belongs to the user
    position_equity = sum(
        (
            v.current_value if v.product_type == ProductType.CNC.value else v.unrealized_pnl
            for v in valuations
        ),
        ZERO,
    )
    net_worth = wallet.virtual_cash + wallet.mis_margin_used + position_equity
    stale_symbols = sorted({v.stock_symbol for v in valuations if v.is_stale})

    return WalletSummary(
        user_id=wallet.user_id,
        currency=wallet.currency,
        virtual_cash=wallet.virtual_cash,
        mis_margin_used=wallet.mis_margin_used,
        realized_pnl=wallet.realized_pnl,
        holdings_count=len(valuations),
        total_invested=total_invested,
        current_value=current_value,
        total_pnl=total_pnl,
        total_pnl_percent=percent(total_pnl, total_invested),
        day_pnl=day_pnl,
        day_pnl_percent=percent(day_pnl, previous_value),
        net_worth=net_worth,
        net_worth_display=money_to_display(net_worth),
        is_stale=bool(stale_symbols),
        stale_symbols=stale_symbols,
        as_of=as_of,
    )


class PortfolioValuator:
    def __init__(
        self,
        repo: LedgerRepositoryProtocol,
        oracle: PriceOracleProtocol,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._repo = repo
        self._oracle = oracle
        self._clock = clock

    async def value(self, db: AsyncSession, wallet: Wallet) -> Valuation:
        holdings = await self._repo.list_holdings(db, wallet.user_id)
        quotes = await self._quotes_for(holdings)
        valuations = [value_holding(h, quotes.get(h.instrument)) for h in holdings]
        summary = build_summary(wallet, valuations, self._clock())
        if summary.is_stale:
            logger.warning(
                "Valuation for user %s uses stale prices for %s",
                wallet.user_id,
                ",".join(summary.stale_symbols),
            )
        return Valuation(summary=summary, holdings=valuations)

    async def summarize(self, db: AsyncSession, wallet: Wallet) -> WalletSummary:
        return (await self.value(db, wallet)).summary

    async def _quotes_for(self, holdings: list[Holding]) -> dict[tuple[str, str], Quote]:
        if not holdings:
            return {}
        instruments = list(dict.fromkeys(h.instrument for h in holdings))
        try:
            return await self._oracle.get_quotes(instruments)
        except PriceUnavailableError as exc:
            logger.warning("Price oracle unavailable, valuing at last known prices: %s", exc.message)
            return {}
