"""FastAPI dependencies."""

from __future__ import annotations

from functools import lru_cache

from ..db.supabase import current_network_is_online
from ..persistence.filesystem import LocalCache
from ..persistence.gateway import PersistenceGateway
from ..persistence.remote import SupabaseBackend
from ..services.container import Services, build_services


@lru_cache()
def get_services() -> Services:
    """Process-wide services: Supabase first, local cache under ``settings.cache_dir`` as fallback."""
    gateway = PersistenceGateway(
        local=LocalCache(),
        remote=SupabaseBackend(),
        online_hint=current_network_is_online,
    )
    return build_services(gateway)
