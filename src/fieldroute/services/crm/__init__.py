"""CRM integrations."""

from .hubspot import HubSpotLogger

__all__ = ["HubSpotLogger"]
