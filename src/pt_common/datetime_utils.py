"""UTC and market-timezone datetime utilities."""

from datetime import date, datetime, time, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo

from config.settings import settings


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


@lru_cache(maxsize=8)
def market_tz(name: str | None = None) -> ZoneInfo:
    return ZoneInfo(name or settings.MARKET_TIMEZONE)


def to_market_time(moment: datetime, tz: ZoneInfo | None = None) -> datetime:
    """Convert an aware datetime into the exchange's local time."""
    return moment.astimezone(tz or market_tz())


def market_today(moment: datetime, tz: ZoneInfo | None = None) -> date:
    return to_market_time(moment, tz).date()


def start_of_market_day(moment: datetime, tz: ZoneInfo | None = None) -> datetime:
    """Midnight of the market-local day containing `moment`, as an aware UTC datetime."""
    zone = tz or market_tz()
    local_day = to_market_time(moment, zone).date()
    return datetime.combine(local_day, time.min, tzinfo=zone).astimezone(timezone.utc)


def parse_hhmm(value: str) -> time:
    """Parse 'HH:MM' into a time. Raises ValueError on bad input."""
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))
