"""Pydantic schemas for pt_watchlist API."""

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from src.pt_watchlist.domain.models import WatchlistItem


class AddWatchlistRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    stock_symbol: str = Field(..., alias="stockSymbol", min_length=1, max_length=32)
    exchange: Literal["NSE", "BSE"] = "NSE"
    stock_name: str | None = Field(None, alias="stockName", max_length=255)
    isin: str | None = Field(None, max_length=12)


class WatchlistItemResponse(BaseModel):
    stock_symbol: str
    stock_name: str
    exchange: str
    isin: str | None
    added_at: datetime | None
    last_price: Decimal | None = None
    previous_close: Decimal | None = None
    day_change: Decimal | None = None

    @classmethod
    def from_domain(cls, item: WatchlistItem) -> "WatchlistItemResponse":
        return cls(
            stock_symbol=item.stock_symbol,
            stock_name=item.stock_name,
            exchange=item.exchange.value,
            isin=item.isin,
            added_at=item.added_at,
        )


class WatchlistResponse(BaseModel):
    items: list[WatchlistItemResponse]
    count: int
    prices_available: bool


class WatchlistCountResponse(BaseModel):
    count: int
    limit: int
