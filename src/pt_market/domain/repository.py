"""Ports of the market-data module.

Unit tests inject fakes conforming to these Protocols; the infrastructure
layer provides the Groww and PostgreSQL implementations.
"""

from collections.abc import Sequence
from typing import Protocol

from src.pt_market.domain.models import AccessToken, Quote


class PriceOracleProtocol(Protocol):
    async def get_quote(self, symbol: str, exchange: str) -> Quote:
        """Raises PriceUnavailableError when no price can be obtained, or
        TokenUnavailableError when the provider credential cannot be issued."""
        ...

    async def get_quotes(self, instruments: Sequence[tuple[str, str]]) -> dict[tuple[str, str], Quote]:
        """Batch lookup keyed by (symbol, exchange). Instruments the provider
        cannot price are absent from the result; a total outage raises
        PriceUnavailableError."""
        ...


class TokenStoreProtocol(Protocol):
    async def load(self) -> AccessToken | None:
        """Raises TokenStoreUnavailableError when the store cannot be read."""
        ...

    async def save(self, token: AccessToken) -> None:
        """Raises TokenStoreUnavailableError when the store cannot be written."""
        ...


class TokenIssuerProtocol(Protocol):
    async def issue(self) -> str:
        """Obtain a fresh provider token. Raises TokenUnavailableError."""
        ...


class TokenStoreUnavailableError(Exception):
    """Persistence for the provider token is down. Never leaves pt_market."""
