"""
dayplay-feed: ranking and recommendation engine for the swipe discovery feed.

Turns a catalog of published places and events, a user's position and filters,
and the user's swipe history into an ordered, paginated, de-duplicated stream.
"""

__version__ = "1.0.0"
