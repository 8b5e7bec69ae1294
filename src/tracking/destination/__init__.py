"""Destination registry — pluggable tracking destinations.

Provides singleton access to one adapter per destination role, built from
``TrackingConfig``. Tests swap adapters with ``set_destination`` and clear
them with ``reset_destinations``.
"""

from shared.config import TrackingConfig
from tracking.destination.pixel import PixelDestination, PixelLoader
from tracking.destination.port import DestinationRole, TrackingDestination

_destination_instances: dict[DestinationRole, TrackingDestination] = {}


def get_destination(
    role: DestinationRole,
    config: TrackingConfig | None = None,
    pixel_loader: PixelLoader | None = None,
) -> TrackingDestination:
    """Return the configured destination adapter for ``role`` (singleton per role).

    ``pixel_loader`` supplies the pixel runtime; without one the pixel
    destination stays unloaded and skips every event.
    """
    if role not in _destination_instances:
        config = config or TrackingConfig.from_env()

        if role is DestinationRole.ANALYTICS_LAYER:
            from tracking.destination.data_layer import DataLayerDestination

            _destination_instances[role] = DataLayerDestination(container_id=config.container_id)
        elif role is DestinationRole.PIXEL:
            _destination_instances[role] = PixelDestination(pixel_id=config.pixel_id, loader=pixel_loader)
        elif role is DestinationRole.CONVERSIONS_API:
            from tracking.destination.conversions_api import ConversionsApiDestination

            _destination_instances[role] = ConversionsApiDestination(
                pixel_id=config.pixel_id,
                access_token=config.access_token,
                api_version=config.api_version,
                timeout=config.send_timeout,
            )
        else:
            raise ValueError(f"Unknown destination role: {role}")

    return _destination_instances[role]


def get_destinations(
    config: TrackingConfig | None = None,
    pixel_loader: PixelLoader | None = None,
) -> list[TrackingDestination]:
    """All destinations, one per role."""
    config = config or TrackingConfig.from_env()
    return [get_destination(role, config, pixel_loader) for role in DestinationRole]


def set_destination(destination: TrackingDestination) -> None:
    """Override the adapter registered for the destination's role."""
    _destination_instances[destination.role] = destination


def reset_destinations() -> None:
    """Reset all destination singletons (useful for testing)."""
    _destination_instances.clear()
