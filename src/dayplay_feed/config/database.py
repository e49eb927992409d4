"""
Supabase client singleton.

The catalog, swipe log and upvote tables all live in one Supabase project;
the stores in `dayplay_feed.feed.stores` share this client.
"""

from functools import lru_cache
from typing import Optional

from supabase import Client, create_client

from dayplay_feed.config.settings import get_settings


class SupabaseClientError(Exception):
    """Raised when the Supabase client cannot be created."""
    pass


@lru_cache(maxsize=1)
def get_supabase_client() -> Client:
    """
    Get the singleton Supabase client instance.

    Raises:
        SupabaseClientError: If credentials are missing or the client cannot be created
    """
    settings = get_settings()
    if not settings.supabase_configured:
        raise SupabaseClientError("SUPABASE_URL and SUPABASE_SERVICE_KEY must be set")
    try:
        return create_client(settings.supabase_url, settings.supabase_service_key)
    except Exception as e:
        raise SupabaseClientError(f"Failed to create Supabase client: {e}") from e


def get_supabase_client_optional() -> Optional[Client]:
    """Get the Supabase client, or None when it is not configured."""
    try:
        return get_supabase_client()
    except SupabaseClientError:
        return None
