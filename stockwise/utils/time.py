"""
Time utilities for provider timestamps and display formatting.

Upstream providers report time as epoch seconds, ISO-8601 strings or bare
trading dates. Everything is converted to timezone-aware UTC datetimes.
"""

from datetime import datetime, timezone
from typing import Any, Optional

_DATE_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d",
)


def utc_now() -> datetime:
    """Current wall-clock time as UTC datetime."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a provider timestamp into a UTC datetime.

    Args:
        value: Epoch seconds/milliseconds (int, float or numeric string),
               ISO-8601 string or a "YYYY-MM-DD[ HH:MM:SS]" string

    Returns:
        UTC datetime, or None if the value is empty or unrecognized
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)

    if isinstance(value, bool):
        return None

    if isinstance(value, (int, float)) or (isinstance(value, str) and value.strip().isdigit()):
        epoch = float(value)
        # Millisecond epochs are 13 digits
        if epoch > 1e11:
            epoch /= 1000.0
        try:
            return datetime.fromtimestamp(epoch, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    if not isinstance(value, str):
        return None

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        parsed = None
        for fmt in _DATE_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue

    if parsed is None:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def ensure_timestamp(value: Any, fallback: Optional[datetime] = None) -> datetime:
    """Parse a provider timestamp, falling back to `fallback` or now."""
    parsed = parse_timestamp(value)
    if parsed is not None:
        return parsed
    if fallback is not None:
        return fallback
    return utc_now()


def format_time_ago(published_at: Any, now: Optional[datetime] = None) -> str:
    """
    Format a publication time relative to now for news listings.

    Args:
        published_at: Anything parse_timestamp accepts
        now: Reference time, defaults to wall clock

    Returns:
        "Just now", "N hours ago", "1 day ago", "N days ago", or the date
        itself once the article is a week old
    """
    published = parse_timestamp(published_at)
    if published is None:
        return ""

    now = now or utc_now()
    diff_hours = int((now - published).total_seconds() // 3600)

    if diff_hours < 1:
        return "Just now"
    if diff_hours < 24:
        return "1 hour ago" if diff_hours == 1 else f"{diff_hours} hours ago"

    diff_days = diff_hours // 24
    if diff_days == 1:
        return "1 day ago"
    if diff_days < 7:
        return f"{diff_days} days ago"

    return published.date().isoformat()
