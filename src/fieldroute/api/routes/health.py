"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from ...config import settings

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


def _get_directions_health_check():
    """Lazy import to avoid startup failures."""
    from ...services.routing.directions_client import check_health as directions_health_check
    return directions_health_check


@router.get("/health/directions", status_code=status.HTTP_200_OK)
def health_directions() -> dict:
    """Check the driving-directions service with a short fixed route."""
    try:
        directions_health_check = _get_directions_health_check()
        return {
            "service": "directions",
            "base_url": settings.directions_base_url,
            "healthy": directions_health_check(),
        }
    except Exception as e:
        return {"service": "directions", "healthy": False, "error": str(e)}


@router.get("/health/database", status_code=status.HTTP_200_OK)
def check_database() -> dict:
    """Check which storage backend is in use and whether it answers."""
    from ...db.supabase import get_supabase_client

    supabase = get_supabase_client()
    if not supabase:
        return {
            "configured": False,
            "storage": "files",
            "data_root": str(settings.data_root),
            "message": "Supabase not configured. Set FIELDROUTE_SUPABASE_URL and FIELDROUTE_SUPABASE_KEY to use it.",
        }

    try:
        supabase.table("routes").select("id").limit(1).execute()
        return {"configured": True, "connected": True, "storage": "supabase"}
    except Exception as exc:
        return {
            "configured": True,
            "connected": False,
            "storage": "supabase",
            "error": str(exc),
            "message": f"Database connection error: {exc}",
        }
