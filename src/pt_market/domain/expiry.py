"""Provider token lifetime.

Groww access tokens die at 06:00 market time every morning. We treat them as
expired one minute earlier so a request in flight never carries a dead token.
"""

from datetime import datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

EARLY_EXPIRY = timedelta(minutes=1)


def next_token_expiry(now: datetime, tz: ZoneInfo, hour: int = 6) -> datetime:
    """Next `hour`:00 boundary in `tz` strictly after `now`, minus one minute, in UTC."""
    local_now = now.astimezone(tz)
    boundary = datetime.combine(local_now.date(), time(hour), tzinfo=tz)
    if local_now >= boundary:
        boundary = datetime.combine(
            local_now.date() + timedelta(days=1), time(hour), tzinfo=tz
        )
    return boundary.astimezone(timezone.utc) - EARLY_EXPIRY
