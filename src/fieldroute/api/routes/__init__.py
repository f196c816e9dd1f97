"""Route group exports."""

from . import checkins, companies, health, routes

__all__ = ["checkins", "companies", "health", "routes"]
