"""Domain models for pt_market — pure dataclasses, no I/O."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass(frozen=True)
class Quote:
    """Last traded price of one instrument as seen by the provider."""

    symbol: str
    exchange: str
    last_price: Decimal
    previous_close: Decimal | None
    fetched_at: datetime

    @property
    def day_change(self) -> Decimal | None:
        if self.previous_close is None:
            return None
        return self.last_price - self.previous_close


@dataclass(frozen=True)
class AccessToken:
    """Provider credential. Expired strictly when now >= expires_at."""

    token: str
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at
