"""Supabase client for the remote delivery store."""

import logging
from functools import lru_cache

import httpx
from supabase import create_client, Client

from ..config import settings

logger = logging.getLogger(__name__)


@lru_cache()
def get_supabase_client() -> Client | None:
    """Get cached Supabase client instance.

    Returns:
        Supabase Client instance if configured, None otherwise.
        Note: This does not test the connection - actual queries may fail with network errors.
    """
    if not settings.remote_enabled:
        logger.info("Remote store disabled by configuration - using local cache only")
        return None
    if not settings.supabase_url or not settings.supabase_key:
        logger.warning("Supabase credentials not configured (missing URL or key)")
        return None

    try:
        return create_client(settings.supabase_url, settings.supabase_key)
    except Exception as e:
        logger.error(f"Failed to create Supabase client: {e}")
        return None


async def current_network_is_online(base_url: str | None = None, timeout: float | None = None) -> bool:
    """Probe the Supabase REST root to tell whether a remote call is worth attempting.

    Any HTTP answer (even 401/404) means the host is reachable; only transport
    errors count as offline.
    """
    base = base_url or settings.supabase_url
    if not base:
        return False
    headers = {"apikey": settings.supabase_key} if settings.supabase_key else {}
    try:
        async with httpx.AsyncClient(timeout=timeout or settings.connectivity_check_timeout_seconds) as client:
            await client.get(f"{base.rstrip('/')}/rest/v1/", headers=headers)
        return True
    except httpx.HTTPError as e:
        logger.debug(f"Connectivity probe failed: {e}")
        return False
