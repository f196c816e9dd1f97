"""Supabase client for the route and company tables."""

import logging
from functools import lru_cache

from supabase import Client, create_client

from ..config import settings


@lru_cache()
def get_supabase_client() -> Client | None:
    """Get cached Supabase client instance.

    Returns:
        Supabase Client instance if configured, None otherwise.
        Note: This does not test the connection - actual queries may fail with network errors.
    """
    if not settings.supabase_url or not settings.supabase_key:
        logging.info("Supabase credentials not configured, using local file storage")
        return None

    try:
        return create_client(settings.supabase_url, settings.supabase_key)
    except Exception as e:
        logging.error(f"Failed to create Supabase client: {e}")
        return None


# Tables used by the service:
#
#   companies    id, name, lat, lng, street, city, state, postal_code, country, owner_id
#   routes       id, user_id, total_distance_mi, total_eta_min, current_stop_index,
#                status, created_at, completed_at, nav_url, geometry (jsonb)
#   route_stops  id, route_id, company_id, name, stop_index, lat, lng, address fields,
#                distance_from_prev_mi, eta_from_prev_min, completed, completed_at, created_at
#   check_ins    id, user_id, company_id, lat, lng, note, timestamp, crm_record_id
