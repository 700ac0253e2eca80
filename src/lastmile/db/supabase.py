"""Supabase client shared by the route, order and shipment repositories."""

import logging
from functools import lru_cache

from supabase import Client, create_client

from ..config import settings


@lru_cache()
def get_supabase_client() -> Client | None:
    """Return the cached Supabase client, or None when it is not configured.

    The service then falls back to in-process repositories. No query is
    issued here, so an unreachable project only surfaces as a
    ``PersistenceError`` on the first repository call.
    """
    if not settings.supabase_url or not settings.supabase_key:
        logging.warning("LASTMILE_SUPABASE_URL or LASTMILE_SUPABASE_KEY is not set")
        return None

    try:
        return create_client(settings.supabase_url, settings.supabase_key)
    except Exception as e:
        logging.error(f"Failed to create Supabase client for {settings.supabase_url}: {e}")
        return None
