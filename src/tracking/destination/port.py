"""Tracking destination port (abstract interface).

Every analytics/ads destination implements the same ``send`` contract, so
the composer fans events out without knowing destination internals, and a
new destination plugs in without touching the composer.
"""

from abc import ABC, abstractmethod
from enum import Enum

from tracking.event.model import TrackingEvent


class DestinationRole(Enum):
    ANALYTICS_LAYER = "analytics_layer"
    PIXEL = "pixel"
    CONVERSIONS_API = "conversions_api"


class TrackingDestination(ABC):
    """Abstract tracking destination."""

    role: DestinationRole
    name: str = "destination"

    async def initialize(self) -> bool:
        """Bring the destination up (load scripts, bootstrap queues).

        Called once by the activation gate. Destinations with nothing to
        set up report success.
        """
        return True

    @abstractmethod
    async def send(self, event: TrackingEvent) -> bool:
        """Deliver one event; True means the destination acknowledged receipt."""
        ...
