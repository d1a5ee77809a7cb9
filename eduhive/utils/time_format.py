from datetime import datetime
from typing import Optional


def format_time_short(value: datetime, now: Optional[datetime] = None) -> str:
    """Compact relative time: now, 5m, 3h, 2d, 1w, 4mo, 2y."""
    now = now or datetime.utcnow()
    seconds = max((now - value).total_seconds(), 0)

    minutes = int(seconds // 60)
    hours = int(seconds // 3600)
    days = int(seconds // 86400)
    weeks = days // 7
    months = days // 30
    years = days // 365

    if minutes < 1:
        return "now"
    if minutes < 60:
        return f"{minutes}m"
    if hours < 24:
        return f"{hours}h"
    if days < 7:
        return f"{days}d"
    if weeks < 4:
        return f"{weeks}w"
    if months < 12:
        return f"{max(months, 1)}mo"
    return f"{max(years, 1)}y"
