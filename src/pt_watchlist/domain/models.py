"""Domain models for pt_watchlist."""

from dataclasses import dataclass
from datetime import datetime

from src.pt_common.enums import Exchange


@dataclass
class WatchlistItem:
    user_id: str
    stock_symbol: str
    exchange: Exchange
    stock_name: str = ""
    isin: str | None = None
    id: str | None = None
    added_at: datetime | None = None
