"""Object graph for one process: built in the app lifespan, kept on app.state.

Routers reach services through the get_* dependencies below, which tests
replace with app.dependency_overrides.
"""

from dataclasses import dataclass

import httpx
from fastapi import Request

from config.settings import Settings
from src.pt_common.datetime_utils import market_tz, parse_hhmm
from src.pt_market.application.credential_cache import CredentialCache
from src.pt_market.domain.repository import PriceOracleProtocol
from src.pt_market.infrastructure.groww_client import (
    GrowwPriceOracle,
    GrowwTokenIssuer,
    build_http_client,
)
from src.pt_market.infrastructure.token_store import SqlTokenStore
from src.pt_trading.application.service import TradingApplicationService
from src.pt_trading.application.square_off import IntradaySquareOff
from src.pt_trading.domain.margin import MarginPolicy
from src.pt_trading.engine.execution import OrderExecutionEngine
from src.pt_trading.engine.ledger_lock import UserLedgerLocks
from src.pt_wallet.application.service import WalletApplicationService
from src.pt_wallet.application.valuator import PortfolioValuator
from src.pt_wallet.infrastructure.persistence import LedgerRepository
from src.pt_watchlist.application.service import WatchlistApplicationService
from src.pt_watchlist.infrastructure.persistence import WatchlistRepository


@dataclass
class Services:
    http: httpx.AsyncClient
    credentials: CredentialCache
    oracle: PriceOracleProtocol
    engine: OrderExecutionEngine
    wallet: WalletApplicationService
    trading: TradingApplicationService
    watchlist: WatchlistApplicationService

    async def aclose(self) -> None:
        await self.http.aclose()


def build_services(settings: Settings, oracle: PriceOracleProtocol | None = None) -> Services:
    """Wire the process-wide services. `oracle` replaces the Groww oracle (integration tests)."""
    tz = market_tz(settings.MARKET_TIMEZONE)
    http = build_http_client(settings.GROWW_BASE_URL, settings.PROVIDER_TIMEOUT_SECONDS)
    credentials = CredentialCache(
        store=SqlTokenStore(),
        issuer=GrowwTokenIssuer(
            http,
            api_key=settings.GROWW_API_KEY,
            api_secret=settings.GROWW_API_SECRET,
            auth_mode=settings.GROWW_AUTH_MODE,
        ),
        tz=tz,
        refresh_hour=settings.TOKEN_REFRESH_HOUR,
    )
    oracle = oracle or GrowwPriceOracle(http, credentials)

    ledger = LedgerRepository()
    policy = MarginPolicy(
        leverage=settings.MIS_LEVERAGE,
        market_open=parse_hhmm(settings.MARKET_OPEN),
        cutoff=parse_hhmm(settings.INTRADAY_CUTOFF),
        tz=tz,
    )
    engine = OrderExecutionEngine(
        repo=ledger,
        oracle=oracle,
        policy=policy,
        locks=UserLedgerLocks(),
        initial_cash=settings.INITIAL_WALLET_BALANCE,
        max_conflict_retries=settings.LEDGER_CONFLICT_MAX_RETRIES,
    )
    square_off = IntradaySquareOff(engine, ledger, oracle, tz)

    return Services(
        http=http,
        credentials=credentials,
        oracle=oracle,
        engine=engine,
        wallet=WalletApplicationService(
            ledger,
            PortfolioValuator(ledger, oracle),
            policy,
            settings.INITIAL_WALLET_BALANCE,
        ),
        trading=TradingApplicationService(engine, ledger, square_off),
        watchlist=WatchlistApplicationService(
            WatchlistRepository(), oracle, settings.WATCHLIST_MAX_ITEMS
        ),
    )


def _services(request: Request) -> Services:
    services: Services = request.app.state.services
    return services


def get_wallet_service(request: Request) -> WalletApplicationService:
    return _services(request).wallet


def get_trading_service(request: Request) -> TradingApplicationService:
    return _services(request).trading


def get_watchlist_service(request: Request) -> WatchlistApplicationService:
    return _services(request).watchlist


def get_price_oracle(request: Request) -> PriceOracleProtocol:
    return _services(request).oracle
