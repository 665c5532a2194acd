"""Groww HTTP adapters: access-token issuer and live-data price oracle.

Both share one httpx.AsyncClient created at startup and closed at shutdown.

Endpoints used:
  POST /v1/token/api/access             -> {"token": "..."}
  GET  /v1/live-data/quote              -> last_price, ohlc.close (single)
  GET  /v1/live-data/ltp                -> {"NSE_TCS": 3500.5, ...} (batch)
  GET  /v1/live-data/ohlc               -> {"NSE_TCS": {"close": ...}, ...} (batch)

Live-data responses are wrapped as {"status": "SUCCESS", "payload": {...}};
unwrapped bodies are accepted too.
"""

import hashlib
import logging
import time
from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Any

import httpx
import pyotp

from src.pt_common.datetime_utils import utc_now
from src.pt_common.errors import PriceUnavailableError, TokenUnavailableError
from src.pt_common.money import to_price
from src.pt_market.application.credential_cache import CredentialCache
from src.pt_market.domain.models import Quote

logger = logging.getLogger(__name__)

TOKEN_PATH = "/v1/token/api/access"
QUOTE_PATH = "/v1/live-data/quote"
LTP_PATH = "/v1/live-data/ltp"
OHLC_PATH = "/v1/live-data/ohlc"

BATCH_SIZE = 50
SEGMENT_CASH = "CASH"

_CLIENT_HEADERS = {
    "Accept": "application/json",
    "x-client-id": "growwapi",
    "x-client-platform": "growwapi-python-client",
    "x-client-platform-version": "1.0.0",
    "X-API-VERSION": "1.0",
}

_STATUS_MESSAGES = {
    401: "Unauthorized: invalid API key or token",
    403: "Forbidden: access denied",
    404: "Not found",
    429: "Too many requests: provider rate limit exceeded",
    500: "Provider internal server error",
    502: "Bad gateway",
    503: "Provider unavailable",
    504: "Gateway timeout",
}


def build_http_client(base_url: str, timeout: float) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url=base_url, timeout=timeout, headers=_CLIENT_HEADERS)


def describe_error(response: httpx.Response) -> str:
    """Provider message for a non-2xx response."""
    if response.status_code == 400:
        try:
            body = response.json()
            return f"Bad request: {body['error']['displayMessage']}"
        except (ValueError, KeyError, TypeError):
            return "Bad request"
    return _STATUS_MESSAGES.get(
        response.status_code, f"Provider request failed with HTTP {response.status_code}"
    )


def checksum(secret: str, timestamp: str) -> str:
    return hashlib.sha256(f"{secret}{timestamp}".encode()).hexdigest()


def exchange_symbol(symbol: str, exchange: str) -> str:
    return f"{exchange}_{symbol}"


def _payload(body: Any) -> Any:
    if isinstance(body, dict) and "payload" in body:
        return body["payload"]
    return body


class GrowwTokenIssuer:
    """Issues a daily access token with TOTP or the approval checksum flow."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        api_key: str,
        api_secret: str,
        auth_mode: str = "totp",
        epoch: Callable[[], float] = time.time,
    ) -> None:
        if auth_mode not in ("totp", "approval"):
            raise ValueError(f"Unsupported Groww auth mode: {auth_mode}")
        self._http = http
        self._api_key = api_key
        self._api_secret = api_secret
        self._auth_mode = auth_mode
        self._epoch = epoch

    def build_request_body(self) -> dict[str, Any]:
        if not self._api_secret.strip():
            raise TokenUnavailableError("GROWW_API_SECRET is not configured")
        if self._auth_mode == "totp":
            return {"key_type": "totp", "totp": pyotp.TOTP(self._api_secret).now()}
        timestamp = int(self._epoch())
        return {
            "key_type": "approval",
            "checksum": checksum(self._api_secret, str(timestamp)),
            "timestamp": timestamp,
        }

    async def issue(self) -> str:
        if not self._api_key:
            raise TokenUnavailableError("GROWW_API_KEY is not configured")
        body = self.build_request_body()
        try:
            response = await self._http.post(
                TOKEN_PATH,
                json=body,
                headers={"Authorization": f"Bearer {self._api_key}"},
            )
        except httpx.HTTPError as exc:
            raise TokenUnavailableError(f"Network error: {exc}") from exc

        if response.is_error:
            raise TokenUnavailableError(describe_error(response))
        try:
            token = response.json()["token"]
        except (ValueError, KeyError, TypeError) as exc:
            raise TokenUnavailableError("Malformed token response") from exc
        if not token:
            raise TokenUnavailableError("Provider returned an empty token")
        logger.info("Issued new Groww access token (%s)", self._auth_mode)
        return str(token)


class _Unauthorized(Exception):
    pass


class GrowwPriceOracle:
    """PriceOracleProtocol backed by Groww live data.

    Every call asks the CredentialCache for the bearer token. A 401 means the
    token was revoked early: it is invalidated and the call retried once.

    get_quote lets TokenUnavailableError through so an order fails with 3002;
    get_quotes folds it into PriceUnavailableError and reads degrade to stale.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        credentials: CredentialCache,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._http = http
        self._credentials = credentials
        self._clock = clock

    async def get_quote(self, symbol: str, exchange: str) -> Quote:
        params = {"exchange": exchange, "segment": SEGMENT_CASH, "trading_symbol": symbol}
        try:
            payload = await self._get_json(QUOTE_PATH, params)
        except httpx.HTTPError as exc:
            raise PriceUnavailableError(symbol, str(exc)) from exc

        last_price = payload.get("last_price") if isinstance(payload, dict) else None
        if last_price is None:
            raise PriceUnavailableError(symbol, "quote has no last price")
        ohlc = payload.get("ohlc") or {}
        close = ohlc.get("close")
        return Quote(
            symbol=symbol,
            exchange=exchange,
            last_price=to_price(last_price),
            previous_close=to_price(close) if close is not None else None,
            fetched_at=self._clock(),
        )

    async def get_quotes(
        self, instruments: Sequence[tuple[str, str]]
    ) -> dict[tuple[str, str], Quote]:
        wanted = {exchange_symbol(s, e): (s, e) for s, e in dict.fromkeys(instruments)}
        if not wanted:
            return {}

        keys = list(wanted)
        quotes: dict[tuple[str, str], Quote] = {}
        now = self._clock()
        try:
            for start in range(0, len(keys), BATCH_SIZE):
                chunk = keys[start:start + BATCH_SIZE]
                params = {"segment": SEGMENT_CASH, "exchange_symbols": ",".join(chunk)}
                ltp = await self._get_json(LTP_PATH, params) or {}
                ohlc = await self._get_json(OHLC_PATH, params) or {}
                for key in chunk:
                    price = ltp.get(key)
                    if price is None:
                        continue
                    close = (ohlc.get(key) or {}).get("close")
                    symbol, exchange = wanted[key]
                    quotes[(symbol, exchange)] = Quote(
                        symbol=symbol,
                        exchange=exchange,
                        last_price=to_price(price),
                        previous_close=to_price(close) if close is not None else None,
                        fetched_at=now,
                    )
        except TokenUnavailableError as exc:
            raise PriceUnavailableError(",".join(keys), exc.message) from exc
        except httpx.HTTPError as exc:
            raise PriceUnavailableError(",".join(keys), str(exc)) from exc

        missing = len(wanted) - len(quotes)
        if missing:
            logger.warning("Groww returned no price for %d of %d instruments", missing, len(wanted))
        return quotes

    async def _get_json(self, path: str, params: dict[str, str]) -> Any:
        try:
            return await self._request(path, params)
        except _Unauthorized:
            logger.warning("Groww rejected the access token, refreshing once")
            return await self._request(path, params, retried=True)

    async def _request(self, path: str, params: dict[str, str], retried: bool = False) -> Any:
        token = await self._credentials.get_token()
        response = await self._http.get(
            path, params=params, headers={"Authorization": f"Bearer {token}"}
        )
        if response.status_code == 401 and not retried:
            self._credentials.invalidate(token)
            raise _Unauthorized()
        if response.is_error:
            raise httpx.HTTPStatusError(
                describe_error(response), request=response.request, response=response
            )
        try:
            return _payload(response.json())
        except ValueError as exc:
            raise httpx.DecodingError("Malformed live-data response", request=response.request) from exc
