"""Date and time formatting utilities."""

from datetime import datetime, timezone
from typing import Optional


def format_date(date: Optional[datetime]) -> str:
    """
    Format a datetime as a local ``YYYY-MM-DD HH:MM:SS`` string.

    Args:
        date: Datetime to format, may be None

    Returns:
        Formatted date string, or "never"
    """
    if date is None:
        return "never"
    return date.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def format_age(date: Optional[datetime], now: Optional[datetime] = None) -> str:
    """
    Format how long ago something happened.

    Args:
        date: Aware datetime of the event, may be None
        now: Reference time (defaults to the current UTC time)

    Returns:
        Short age such as "5s ago", "3m ago", "2h ago" or "never"
    """
    if date is None:
        return "never"

    now = now or datetime.now(timezone.utc)
    seconds = max(0, int((now - date).total_seconds()))
    if seconds < 60:
        return f"{seconds}s ago"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    return f"{seconds // 86400}d ago"
