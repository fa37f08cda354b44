"""Database clients and utilities."""

from .supabase import current_network_is_online, get_supabase_client

__all__ = ["get_supabase_client", "current_network_is_online"]
