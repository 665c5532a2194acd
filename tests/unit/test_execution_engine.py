"""Unit tests for OrderExecutionEngine against the in-memory ledger."""

import asyncio
from datetime import UTC, datetime, time
from decimal import Decimal

import httpx
import pytest

from src.pt_common.datetime_utils import market_tz
from src.pt_common.enums import Exchange, OrderSide, ProductType
from src.pt_common.errors import (
    InsufficientFundsError,
    InsufficientHoldingsError,
    IntradayWindowClosedError,
    LedgerConflictError,
    PriceUnavailableError,
    TokenUnavailableError,
)
from src.pt_market.application.credential_cache import CredentialCache
from src.pt_market.infrastructure.groww_client import GrowwPriceOracle
from src.pt_trading.domain.margin import MarginPolicy
from src.pt_trading.domain.models import Order
from src.pt_trading.engine.execution import OrderExecutionEngine
from src.pt_trading.engine.ledger_lock import UserLedgerLocks
from tests.unit.fakes import (
    Clock,
    FakeSession,
    InMemoryLedgerRepository,
    InMemoryTokenStore,
    StaticPriceOracle,
    unavailable_issuer,
)

USER = "user-1"


def _policy() -> MarginPolicy:
    return MarginPolicy(
        leverage=Decimal("4"),
        market_open=time(9, 15),
        cutoff=time(15, 30),
        tz=market_tz("Asia/Kolkata"),
    )


def _order(side: OrderSide, qty: int, product: ProductType = ProductType.CNC, symbol: str = "TCS") -> Order:
    return Order(
        side=side,
        stock_symbol=symbol,
        exchange=Exchange.NSE,
        quantity=qty,
        product_type=product,
        stock_name="Tata Consultancy",
    )


@pytest.fixture
def repo() -> InMemoryLedgerRepository:
    r = InMemoryLedgerRepository()
    r.seed_wallet(USER, "100000.00")
    return r


@pytest.fixture
def oracle() -> StaticPriceOracle:
    return StaticPriceOracle({"TCS": "500.00"})


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def engine(repo: InMemoryLedgerRepository, oracle: StaticPriceOracle, clock: Clock) -> OrderExecutionEngine:
    return OrderExecutionEngine(
        repo=repo,
        oracle=oracle,
        policy=_policy(),
        locks=UserLedgerLocks(),
        initial_cash=Decimal("1000000.00"),
        max_conflict_retries=3,
        clock=clock,
    )


class TestScenario:
    async def test_buy_buy_sell_walkthrough(
        self, engine: OrderExecutionEngine, repo: InMemoryLedgerRepository, oracle: StaticPriceOracle
    ) -> None:
        db = FakeSession()

        first = await engine.execute(db, USER, _order(OrderSide.BUY, 10))
        assert first.wallet.virtual_cash == Decimal("95000.00")
        assert first.holding is not None
        assert first.holding.quantity == 10
        assert first.holding.average_price == Decimal("500")

        oracle.prices["TCS"] = Decimal("600.00")
        second = await engine.execute(db, USER, _order(OrderSide.BUY, 10))
        assert second.wallet.virtual_cash == Decimal("89000.00")
        assert second.holding.quantity == 20
        assert second.holding.average_price == Decimal("550")

        oracle.prices["TCS"] = Decimal("700.00")
        third = await engine.execute(db, USER, _order(OrderSide.SELL, 15))
        assert third.realized_pnl == Decimal("2250.00")
        assert third.wallet.virtual_cash == Decimal("99500.00")
        assert third.holding.quantity == 5
        assert third.holding.average_price == Decimal("550")

        assert [t.side for t in repo.transactions] == [OrderSide.BUY, OrderSide.BUY, OrderSide.SELL]
        assert repo.transactions[-1].balance_after == Decimal("99500.00")
        assert db.commits == 3

    async def test_sequential_buys_average_is_weighted_mean(
        self, engine: OrderExecutionEngine, repo: InMemoryLedgerRepository, oracle: StaticPriceOracle
    ) -> None:
        db = FakeSession()
        fills = [(3, "101.10"), (7, "99.35"), (5, "102.00")]
        for qty, price in fills:
            oracle.prices["TCS"] = Decimal(price)
            await engine.execute(db, USER, _order(OrderSide.BUY, qty))

        holding = repo.holding(USER, "TCS")
        expected = sum(Decimal(p) * q for q, p in fills) / sum(q for q, _ in fills)
        assert holding.quantity == 15
        assert abs(holding.average_price - expected) < Decimal("0.000001")

    async def test_selling_everything_deletes_holding(
        self, engine: OrderExecutionEngine, repo: InMemoryLedgerRepository
    ) -> None:
        db = FakeSession()
        await engine.execute(db, USER, _order(OrderSide.BUY, 10))
        result = await engine.execute(db, USER, _order(OrderSide.SELL, 10))

        assert result.holding is None
        assert repo.holding(USER, "TCS") is None
        assert result.realized_pnl == Decimal("0.00")
        assert result.wallet.virtual_cash == Decimal("100000.00")


class TestBuyRules:
    async def test_buy_debits_exactly_required_funds(
        self, engine: OrderExecutionEngine, repo: InMemoryLedgerRepository
    ) -> None:
        result = await engine.execute(FakeSession(), USER, _order(OrderSide.BUY, 7))
        assert result.transaction.net_amount == Decimal("3500.00")
        assert repo.wallets[USER].virtual_cash == Decimal("96500.00")

    async def test_insufficient_funds_leaves_ledger_untouched(
        self, engine: OrderExecutionEngine, repo: InMemoryLedgerRepository
    ) -> None:
        db = FakeSession()
        with pytest.raises(InsufficientFundsError) as exc_info:
            await engine.execute(db, USER, _order(OrderSide.BUY, 201))

        assert exc_info.value.required == Decimal("100500.00")
        assert repo.wallets[USER].virtual_cash == Decimal("100000.00")
        assert repo.holdings == {}
        assert repo.transactions == []
        assert db.rollbacks == 1

    async def test_mis_buy_blocks_quarter_margin(
        self, engine: OrderExecutionEngine, repo: InMemoryLedgerRepository
    ) -> None:
        result = await engine.execute(
            FakeSession(), USER, _order(OrderSide.BUY, 10, ProductType.MIS)
        )
        assert result.transaction.net_amount == Decimal("1250.00")
        assert result.wallet.virtual_cash == Decimal("98750.00")
        assert result.wallet.mis_margin_used == Decimal("1250.00")
        assert result.holding.margin_used == Decimal("1250.00")

    async def test_mis_buy_outside_window_rejected_before_price_fetch(
        self, engine: OrderExecutionEngine, oracle: StaticPriceOracle, clock: Clock
    ) -> None:
        clock.now = datetime(2026, 10, 19, 10, 30, tzinfo=UTC)  # 16:00 IST
        with pytest.raises(IntradayWindowClosedError):
            await engine.execute(FakeSession(), USER, _order(OrderSide.BUY, 1, ProductType.MIS))
        assert oracle.quote_calls == 0

    async def test_mis_buy_on_weekend_rejected(
        self, engine: OrderExecutionEngine, clock: Clock
    ) -> None:
        clock.now = datetime(2026, 10, 17, 5, 0, tzinfo=UTC)  # Saturday 10:30 IST
        with pytest.raises(IntradayWindowClosedError):
            await engine.execute(FakeSession(), USER, _order(OrderSide.BUY, 1, ProductType.MIS))

    async def test_price_unavailable_aborts_without_mutation(
        self, engine: OrderExecutionEngine, repo: InMemoryLedgerRepository, oracle: StaticPriceOracle
    ) -> None:
        oracle.down = True
        db = FakeSession()
        with pytest.raises(PriceUnavailableError):
            await engine.execute(db, USER, _order(OrderSide.BUY, 1))
        assert repo.transactions == []
        assert db.commits == 0

    async def test_token_failure_surfaces_without_mutation(
        self, repo: InMemoryLedgerRepository, clock: Clock
    ) -> None:
        credentials = CredentialCache(
            InMemoryTokenStore(), unavailable_issuer(), market_tz("Asia/Kolkata"), clock=clock
        )
        http = httpx.AsyncClient(
            base_url="https://api.groww.test",
            transport=httpx.MockTransport(lambda r: httpx.Response(200, json={})),
        )
        engine = OrderExecutionEngine(
            repo, GrowwPriceOracle(http, credentials, clock=clock), _policy(), clock=clock
        )
        db = FakeSession()
        with pytest.raises(TokenUnavailableError) as exc_info:
            await engine.execute(db, USER, _order(OrderSide.BUY, 1))
        assert exc_info.value.code == 3002
        assert repo.transactions == []
        assert repo.wallets[USER].virtual_cash == Decimal("100000.00")

    async def test_wallet_created_lazily_on_first_order(
        self, engine: OrderExecutionEngine, repo: InMemoryLedgerRepository
    ) -> None:
        result = await engine.execute(FakeSession(), "newcomer", _order(OrderSide.BUY, 1))
        assert result.wallet.virtual_cash == Decimal("999500.00")


class TestSellRules:
    async def test_sell_without_holding_raises(self, engine: OrderExecutionEngine) -> None:
        with pytest.raises(InsufficientHoldingsError):
            await engine.execute(FakeSession(), USER, _order(OrderSide.SELL, 1))

    async def test_oversell_raises_and_keeps_quantity(
        self, engine: OrderExecutionEngine, repo: InMemoryLedgerRepository
    ) -> None:
        db = FakeSession()
        await engine.execute(db, USER, _order(OrderSide.BUY, 5))
        with pytest.raises(InsufficientHoldingsError) as exc_info:
            await engine.execute(db, USER, _order(OrderSide.SELL, 6))
        assert exc_info.value.available == 5
        assert repo.holding(USER, "TCS").quantity == 5

    async def test_cnc_and_mis_positions_are_separate(
        self, engine: OrderExecutionEngine
    ) -> None:
        db = FakeSession()
        await engine.execute(db, USER, _order(OrderSide.BUY, 5, ProductType.MIS))
        with pytest.raises(InsufficientHoldingsError):
            await engine.execute(db, USER, _order(OrderSide.SELL, 5, ProductType.CNC))

    async def test_mis_round_trip_returns_margin_plus_profit(
        self, engine: OrderExecutionEngine, oracle: StaticPriceOracle
    ) -> None:
        db = FakeSession()
        await engine.execute(db, USER, _order(OrderSide.BUY, 10, ProductType.MIS))
        oracle.prices["TCS"] = Decimal("520.00")
        result = await engine.execute(db, USER, _order(OrderSide.SELL, 10, ProductType.MIS))

        assert result.realized_pnl == Decimal("200.00")
        assert result.transaction.net_amount == Decimal("1450.00")
        assert result.wallet.virtual_cash == Decimal("100200.00")
        assert result.wallet.mis_margin_used == Decimal("0.00")

    async def test_mis_loss_beyond_cash_floors_at_zero(
        self, repo: InMemoryLedgerRepository, oracle: StaticPriceOracle, clock: Clock
    ) -> None:
        repo.seed_wallet("thin", "1250.00")
        engine = OrderExecutionEngine(repo, oracle, _policy(), clock=clock)
        db = FakeSession()
        await engine.execute(db, "thin", _order(OrderSide.BUY, 10, ProductType.MIS))
        oracle.prices["TCS"] = Decimal("300.00")
        result = await engine.execute(db, "thin", _order(OrderSide.SELL, 10, ProductType.MIS))

        assert result.wallet.virtual_cash == Decimal("0.00")
        assert result.realized_pnl == Decimal("-2000.00")


class TestAtomicity:
    async def test_conflict_is_retried_then_succeeds(
        self, engine: OrderExecutionEngine, repo: InMemoryLedgerRepository
    ) -> None:
        repo.conflicts_to_raise = 2
        db = FakeSession()
        result = await engine.execute(db, USER, _order(OrderSide.BUY, 1))

        assert result.wallet.virtual_cash == Decimal("99500.00")
        assert len(repo.transactions) == 1
        assert db.rollbacks == 2

    async def test_persistent_conflict_surfaces_after_retries(
        self, engine: OrderExecutionEngine, repo: InMemoryLedgerRepository
    ) -> None:
        repo.conflicts_to_raise = 10
        db = FakeSession()
        with pytest.raises(LedgerConflictError):
            await engine.execute(db, USER, _order(OrderSide.BUY, 1))
        assert db.rollbacks == 4  # first attempt + 3 retries
        assert repo.wallets[USER].virtual_cash == Decimal("100000.00")

    async def test_concurrent_buys_never_overspend(
        self, repo: InMemoryLedgerRepository, oracle: StaticPriceOracle, clock: Clock
    ) -> None:
        repo.seed_wallet("racer", "5000.00")
        engine = OrderExecutionEngine(repo, oracle, _policy(), clock=clock)

        results = await asyncio.gather(
            *(engine.execute(FakeSession(), "racer", _order(OrderSide.BUY, 4)) for _ in range(5)),
            return_exceptions=True,
        )

        succeeded = [r for r in results if not isinstance(r, Exception)]
        failed = [r for r in results if isinstance(r, InsufficientFundsError)]
        assert len(succeeded) == 2
        assert len(failed) == 3
        assert repo.wallets["racer"].virtual_cash == Decimal("1000.00")
        assert repo.holding("racer", "TCS").quantity == 8

    async def test_concurrent_buy_and_sells_never_go_negative(
        self, engine: OrderExecutionEngine, repo: InMemoryLedgerRepository
    ) -> None:
        await engine.execute(FakeSession(), USER, _order(OrderSide.BUY, 3))

        orders = [_order(OrderSide.SELL, 2), _order(OrderSide.SELL, 2), _order(OrderSide.BUY, 1)]
        results = await asyncio.gather(
            *(engine.execute(FakeSession(), USER, o) for o in orders), return_exceptions=True
        )

        holding = repo.holding(USER, "TCS")
        quantity = holding.quantity if holding else 0
        assert quantity >= 0
        assert repo.wallets[USER].virtual_cash >= 0
        bought = 3 + sum(
            1 for o, r in zip(orders, results) if o.is_buy and not isinstance(r, Exception)
        )
        sold = sum(
            2 for o, r in zip(orders, results) if not o.is_buy and not isinstance(r, Exception)
        )
        assert quantity == bought - sold
        assert all(
            isinstance(r, InsufficientHoldingsError) for r in results if isinstance(r, Exception)
        )

    async def test_explicit_price_skips_oracle_and_flags_square_off(
        self, engine: OrderExecutionEngine, oracle: StaticPriceOracle, repo: InMemoryLedgerRepository
    ) -> None:
        db = FakeSession()
        await engine.execute(db, USER, _order(OrderSide.BUY, 2))
        calls = oracle.quote_calls
        result = await engine.execute(
            db, USER, _order(OrderSide.SELL, 2), price=Decimal("510.00"), auto_square_off=True
        )
        assert oracle.quote_calls == calls
        assert result.transaction.is_auto_square_off is True
        assert result.transaction.price == Decimal("510.00")
