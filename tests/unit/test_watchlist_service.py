"""Unit tests for WatchlistApplicationService."""

from decimal import Decimal

import pytest

from src.pt_common.enums import Exchange
from src.pt_common.errors import (
    DuplicateWatchlistEntryError,
    WatchlistItemNotFoundError,
    WatchlistLimitExceededError,
)
from src.pt_watchlist.application.schemas import AddWatchlistRequest
from src.pt_watchlist.application.service import WatchlistApplicationService
from tests.unit.fakes import FakeSession, InMemoryWatchlistRepository, StaticPriceOracle


@pytest.fixture
def repo() -> InMemoryWatchlistRepository:
    return InMemoryWatchlistRepository()


@pytest.fixture
def oracle() -> StaticPriceOracle:
    return StaticPriceOracle({"TCS": "3500.00"}, previous_close={"TCS": "3450.00"})


@pytest.fixture
def service(repo: InMemoryWatchlistRepository, oracle: StaticPriceOracle) -> WatchlistApplicationService:
    return WatchlistApplicationService(repo, oracle, max_items=3)


def _req(symbol: str, exchange: str = "NSE") -> AddWatchlistRequest:
    return AddWatchlistRequest(stock_symbol=symbol, exchange=exchange)


class TestAdd:
    async def test_add_normalizes_symbol_and_defaults_name(
        self, service: WatchlistApplicationService
    ) -> None:
        db = FakeSession()
        item = await service.add(db, "u1", _req(" tcs "))
        assert item.stock_symbol == "TCS"
        assert item.stock_name == "TCS"
        assert db.commits == 1

    async def test_duplicate_rejected(self, service: WatchlistApplicationService) -> None:
        await service.add(FakeSession(), "u1", _req("TCS"))
        db = FakeSession()
        with pytest.raises(DuplicateWatchlistEntryError):
            await service.add(db, "u1", _req("tcs"))
        assert db.rollbacks == 1

    async def test_same_symbol_other_exchange_allowed(
        self, service: WatchlistApplicationService
    ) -> None:
        await service.add(FakeSession(), "u1", _req("TCS", "NSE"))
        await service.add(FakeSession(), "u1", _req("TCS", "BSE"))
        assert (await service.count(FakeSession(), "u1")).count == 2

    async def test_limit_enforced(
        self, service: WatchlistApplicationService, repo: InMemoryWatchlistRepository
    ) -> None:
        for symbol in ("A", "B", "C"):
            await service.add(FakeSession(), "u1", _req(symbol))
        with pytest.raises(WatchlistLimitExceededError) as exc_info:
            await service.add(FakeSession(), "u1", _req("D"))
        assert exc_info.value.http_status == 429
        assert len(repo.items) == 3

    async def test_limit_is_per_user(self, service: WatchlistApplicationService) -> None:
        for symbol in ("A", "B", "C"):
            await service.add(FakeSession(), "u1", _req(symbol))
        await service.add(FakeSession(), "u2", _req("A"))


class TestRemove:
    async def test_remove(self, service: WatchlistApplicationService) -> None:
        await service.add(FakeSession(), "u1", _req("TCS"))
        await service.remove(FakeSession(), "u1", "tcs", Exchange.NSE)
        assert (await service.count(FakeSession(), "u1")).count == 0

    async def test_remove_missing(self, service: WatchlistApplicationService) -> None:
        with pytest.raises(WatchlistItemNotFoundError):
            await service.remove(FakeSession(), "u1", "TCS", Exchange.NSE)


class TestList:
    async def test_list_with_prices(self, service: WatchlistApplicationService) -> None:
        await service.add(FakeSession(), "u1", _req("TCS"))
        await service.add(FakeSession(), "u1", _req("NOPRICE"))

        listing = await service.list(FakeSession(), "u1")

        assert listing.count == 2
        assert listing.prices_available is True
        by_symbol = {i.stock_symbol: i for i in listing.items}
        assert by_symbol["TCS"].last_price == Decimal("3500.00")
        assert by_symbol["TCS"].day_change == Decimal("50.00")
        assert by_symbol["NOPRICE"].last_price is None

    async def test_list_survives_price_outage(
        self, service: WatchlistApplicationService, oracle: StaticPriceOracle
    ) -> None:
        await service.add(FakeSession(), "u1", _req("TCS"))
        oracle.down = True
        listing = await service.list(FakeSession(), "u1")
        assert listing.prices_available is False
        assert listing.items[0].last_price is None

    async def test_empty_list_skips_oracle(
        self, service: WatchlistApplicationService, oracle: StaticPriceOracle
    ) -> None:
        listing = await service.list(FakeSession(), "u1")
        assert listing.count == 0
        assert oracle.batch_calls == 0

    async def test_count_reports_limit(self, service: WatchlistApplicationService) -> None:
        counted = await service.count(FakeSession(), "u1")
        assert (counted.count, counted.limit) == (0, 3)
