"""
Small helpers shared by the stores, the engine and the HTTP layer.
"""

from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional, Set


def utc_now() -> datetime:
    """Timezone-aware current time. All engine timestamps are UTC."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a timestamp coming back from PostgREST or a JSON payload.

    Accepts aware/naive datetimes, ISO-8601 strings (with a trailing "Z"),
    and epoch milliseconds (the swipe log of the mobile client stores
    `Date.now()` values). Naive values are assumed to be UTC.

    Returns:
        An aware datetime, or None for empty / unparseable input.

    Examples:
        >>> parse_timestamp("2024-05-01T10:00:00Z").isoformat()
        '2024-05-01T10:00:00+00:00'
        >>> parse_timestamp(None) is None
        True
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        parsed = datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def normalize_string_set(items: Iterable[Optional[str]]) -> Set[str]:
    """Lowercase, strip and de-duplicate, dropping empty values."""
    return {s.lower().strip() for s in items if s and s.strip()}


def split_csv(value: Optional[str]) -> List[str]:
    """
    Split a comma separated query parameter.

    >>> split_csv("food, coffee,,museum")
    ['food', 'coffee', 'museum']
    """
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def chunk_list(items: List[Any], chunk_size: int) -> List[List[Any]]:
    """Split a list into chunks (PostgREST `in` filters are URL-length bound)."""
    return [items[i:i + chunk_size] for i in range(0, len(items), chunk_size)]
