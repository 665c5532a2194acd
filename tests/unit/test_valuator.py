"""Tests for portfolio valuation."""

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from src.pt_common.enums import Exchange, ProductType
from src.pt_market.domain.models import Quote
from src.pt_wallet.application.valuator import PortfolioValuator, build_summary, value_holding
from src.pt_wallet.domain.models import Holding, Wallet
from tests.unit.fakes import TRADING_NOW, Clock, FakeSession, InMemoryLedgerRepository, StaticPriceOracle


def _cnc() -> Holding:
    return Holding(
        user_id="u1", stock_symbol="TCS", exchange=Exchange.NSE, product_type=ProductType.CNC,
        quantity=20, total_invested=Decimal("11000.0000"), average_price=Decimal("550"),
        last_price=Decimal("700.00"),
    )


def _mis() -> Holding:
    return Holding(
        user_id="u1", stock_symbol="INFY", exchange=Exchange.NSE, product_type=ProductType.MIS,
        quantity=10, total_invested=Decimal("15000.0000"), average_price=Decimal("1500"),
        margin_used=Decimal("3750.00"), last_price=Decimal("1500.00"), trade_date=TRADING_NOW,
    )


@pytest.fixture
def repo() -> InMemoryLedgerRepository:
    r = InMemoryLedgerRepository()
    r.wallets["u1"] = Wallet("u1", Decimal("89000.00"), mis_margin_used=Decimal("3750.00"))
    for h in (_cnc(), _mis()):
        r.holdings[("u1", h.stock_symbol, h.exchange.value, h.product_type.value)] = h
    return r


@pytest.fixture
def oracle() -> StaticPriceOracle:
    return StaticPriceOracle(
        {"TCS": "600.00", "INFY": "1520.00"},
        previous_close={"TCS": "580.00", "INFY": "1510.00"},
    )


class TestValueHolding:
    def test_live_quote(self) -> None:
        quote = Quote("TCS", "NSE", Decimal("600.00"), Decimal("580.00"), TRADING_NOW)
        v = value_holding(_cnc(), quote)
        assert v.current_value == Decimal("12000.00")
        assert v.unrealized_pnl == Decimal("1000.00")
        assert v.unrealized_pnl_percent == Decimal("9.09")
        assert v.day_pnl == Decimal("400.00")
        assert v.is_stale is False

    def test_missing_quote_falls_back_to_last_ledger_price(self) -> None:
        v = value_holding(_cnc(), None)
        assert v.current_price == Decimal("700.00")
        assert v.current_value == Decimal("14000.00")
        assert v.day_pnl == 0
        assert v.is_stale is True

    def test_never_priced_holding_carried_at_cost(self) -> None:
        holding = _cnc()
        holding.last_price = None
        v = value_holding(holding, None)
        assert v.current_value == Decimal("11000.00")
        assert v.unrealized_pnl == Decimal("0.00")

    def test_no_previous_close_means_flat_day(self) -> None:
        quote = Quote("TCS", "NSE", Decimal("600.00"), None, TRADING_NOW)
        assert value_holding(_cnc(), quote).day_pnl == 0


class TestBuildSummary:
    def test_empty_portfolio_has_zero_percentages(self) -> None:
        summary = build_summary(Wallet("u1", Decimal("100000.00")), [], TRADING_NOW)
        assert summary.total_pnl_percent == Decimal("0.00")
        assert summary.day_pnl_percent == Decimal("0.00")
        assert summary.net_worth == Decimal("100000.00")
        assert summary.net_worth_display == "₹100,000.00"
        assert summary.is_stale is False


class TestPortfolioValuator:
    async def test_totals_and_net_worth(
        self, repo: InMemoryLedgerRepository, oracle: StaticPriceOracle
    ) -> None:
        valuator = PortfolioValuator(repo, oracle, clock=Clock())
        valuation = await valuator.value(FakeSession(), repo.wallets["u1"])
        s = valuation.summary

        assert s.holdings_count == 2
        assert s.total_invested == Decimal("26000.00")
        assert s.current_value == Decimal("27200.00")
        assert s.total_pnl == Decimal("1200.00")
        assert s.total_pnl_percent == Decimal("4.62")
        assert s.day_pnl == Decimal("500.00")
        assert s.day_pnl_percent == Decimal("1.87")
        # cash + blocked margin + CNC value + MIS unrealized
        assert s.net_worth == Decimal("104950.00")
        assert s.as_of == TRADING_NOW
        assert oracle.batch_calls == 1

    async def test_partial_quotes_mark_missing_symbols_stale(
        self, repo: InMemoryLedgerRepository
    ) -> None:
        oracle = StaticPriceOracle({"TCS": "600.00"})
        summary = await PortfolioValuator(repo, oracle, clock=Clock()).summarize(
            FakeSession(), repo.wallets["u1"]
        )
        assert summary.is_stale is True
        assert summary.stale_symbols == ["INFY"]
        assert summary.current_value == Decimal("27000.00")

    async def test_oracle_outage_values_everything_stale(
        self, repo: InMemoryLedgerRepository, oracle: StaticPriceOracle
    ) -> None:
        oracle.down = True
        summary = await PortfolioValuator(repo, oracle, clock=Clock()).summarize(
            FakeSession(), repo.wallets["u1"]
        )
        assert summary.stale_symbols == ["INFY", "TCS"]
        assert summary.current_value == Decimal("29000.00")

    async def test_empty_portfolio_skips_oracle(self, oracle: StaticPriceOracle) -> None:
        repo = InMemoryLedgerRepository()
        wallet = repo.seed_wallet("u2", "5000.00")
        summary = await PortfolioValuator(repo, oracle, clock=Clock()).summarize(FakeSession(), wallet)
        assert summary.holdings_count == 0
        assert oracle.batch_calls == 0

    async def test_valuation_is_deterministic_for_same_prices(
        self, repo: InMemoryLedgerRepository, oracle: StaticPriceOracle
    ) -> None:
        valuator = PortfolioValuator(repo, oracle, clock=Clock())
        first = await valuator.summarize(FakeSession(), repo.wallets["u1"])
        second = await valuator.summarize(FakeSession(), repo.wallets["u1"])
        assert first == second

    async def test_valuation_does_not_touch_ledger(
        self, repo: InMemoryLedgerRepository, oracle: StaticPriceOracle
    ) -> None:
        before = repo.snapshot()
        await PortfolioValuator(repo, oracle, clock=Clock()).value(FakeSession(), repo.wallets["u1"])
        assert repo.snapshot() == before
