"""
Cross-cutting concerns for the feed service.

- Structured logging configuration
- Request tracing middleware
- Common utilities
"""

from dayplay_feed.core.logging import configure_logging, get_logger
from dayplay_feed.core.utils import normalize_string_set, parse_timestamp, split_csv, utc_now

__all__ = [
    "configure_logging",
    "get_logger",
    "normalize_string_set",
    "parse_timestamp",
    "split_csv",
    "utc_now",
]
