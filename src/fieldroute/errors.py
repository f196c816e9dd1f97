"""Error taxonomy shared by the routing services and the API layer."""

from __future__ import annotations


class RoutePlannerError(Exception):
    """Base class for route planner failures."""


class InvalidRequest(RoutePlannerError, ValueError):
    """The request cannot produce a route (e.g. fewer than two resolvable stops)."""


class NotFound(RoutePlannerError, LookupError):
    """A referenced company, route, stop or check-in does not exist."""


class ProviderUnavailable(RoutePlannerError):
    """The driving-directions service failed or is not configured."""


class RebuildFailed(RoutePlannerError):
    """Re-optimising the unfinished part of a route failed."""


class CrmLoggingFailed(RoutePlannerError):
    """Writing a field visit to the CRM failed."""
