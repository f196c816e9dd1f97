"""Route storage backends."""

from __future__ import annotations

import logging
from functools import lru_cache

from ..db.supabase import get_supabase_client
from .base import RouteStore
from .database import SupabaseRouteStore
from .filesystem import FileRouteStore

logger = logging.getLogger(__name__)


@lru_cache()
def get_route_store() -> RouteStore:
    """Supabase-backed store when credentials are configured, JSON files otherwise."""
    client = get_supabase_client()
    if client is not None:
        logger.info("Using Supabase route storage")
        return SupabaseRouteStore(client)
    logger.info("Using file route storage")
    return FileRouteStore()


__all__ = ["RouteStore", "FileRouteStore", "SupabaseRouteStore", "get_route_store"]
