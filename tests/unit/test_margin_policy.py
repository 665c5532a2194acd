"""Tests for MarginPolicy: required funds, buying power and the MIS window."""

from datetime import UTC, datetime, time
from decimal import Decimal

import pytest

from src.pt_common.datetime_utils import market_tz
from src.pt_common.enums import ProductType
from src.pt_common.errors import InsufficientFundsError, IntradayWindowClosedError
from src.pt_trading.domain.margin import MarginPolicy
from src.pt_trading.domain.models import Order
from src.pt_wallet.domain.models import Wallet


@pytest.fixture
def policy() -> MarginPolicy:
    return MarginPolicy(Decimal("4"), time(9, 15), time(15, 30), market_tz("Asia/Kolkata"))


def _ist(hour: int, minute: int, day: int = 19) -> datetime:
    # IST is UTC+05:30; 2026-10-19 is a Monday
    return datetime(2026, 10, day, hour, minute, tzinfo=market_tz("Asia/Kolkata")).astimezone(UTC)


class TestRequiredFunds:
    def test_cnc_pays_full_notional(self, policy: MarginPolicy) -> None:
        order = Order.create("BUY", "TCS", "NSE", 10, "CNC")
        assert policy.required_funds(order, Decimal("500.00")) == Decimal("5000.00")

    def test_mis_blocks_a_quarter(self, policy: MarginPolicy) -> None:
        order = Order.create("BUY", "TCS", "NSE", 10, "MIS")
        assert policy.required_funds(order, Decimal("500.00")) == Decimal("1250.00")

    def test_mis_margin_rounds_up(self, policy: MarginPolicy) -> None:
        order = Order.create("BUY", "TCS", "NSE", 1, "MIS")
        assert policy.required_funds(order, Decimal("100.01")) == Decimal("25.01")

    def test_margin_rate(self, policy: MarginPolicy) -> None:
        assert policy.margin_rate == Decimal("0.25")

    def test_leverage_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            MarginPolicy(Decimal("0"), time(9, 15), time(15, 30), market_tz("Asia/Kolkata"))


class TestAffordability:
    def test_exact_cash_is_affordable(self, policy: MarginPolicy) -> None:
        policy.ensure_affordable(Wallet("u1", Decimal("5000.00")), Decimal("5000.00"))

    def test_one_paisa_short(self, policy: MarginPolicy) -> None:
        with pytest.raises(InsufficientFundsError):
            policy.ensure_affordable(Wallet("u1", Decimal("4999.99")), Decimal("5000.00"))

    def test_buying_power(self, policy: MarginPolicy) -> None:
        wallet = Wallet("u1", Decimal("95000.00"))
        assert policy.buying_power(wallet, ProductType.CNC) == Decimal("95000.00")
        assert policy.buying_power(wallet, ProductType.MIS) == Decimal("380000.00")


class TestIntradayWindow:
    @pytest.mark.parametrize(("h", "m"), [(9, 15), (12, 0), (15, 29)])
    def test_open(self, policy: MarginPolicy, h: int, m: int) -> None:
        assert policy.is_intraday_window_open(_ist(h, m))

    @pytest.mark.parametrize(("h", "m"), [(9, 14), (15, 30), (20, 0), (3, 0)])
    def test_closed(self, policy: MarginPolicy, h: int, m: int) -> None:
        assert not policy.is_intraday_window_open(_ist(h, m))

    def test_weekend_closed(self, policy: MarginPolicy) -> None:
        assert not policy.is_intraday_window_open(_ist(11, 0, day=18))  # Sunday

    def test_entry_rejected_after_cutoff(self, policy: MarginPolicy) -> None:
        with pytest.raises(IntradayWindowClosedError) as exc_info:
            policy.ensure_intraday_entry_allowed(_ist(15, 45))
        assert "Asia/Kolkata" in exc_info.value.message

    def test_past_cutoff(self, policy: MarginPolicy) -> None:
        assert policy.is_past_cutoff(_ist(15, 30))
        assert not policy.is_past_cutoff(_ist(15, 29))
