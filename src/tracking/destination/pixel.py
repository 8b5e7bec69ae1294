"""Client-side pixel destination.

The pixel runtime is whatever callable stands in for the page's ``fbq``
global: ``runtime(verb, event_name, params, options)``. It only exists
after the pixel script is loaded, which the activation gate triggers via
``initialize()``; until then ``send`` is a no-op returning False.
"""

from collections.abc import Callable
from typing import Any

import structlog

from tracking.destination.port import DestinationRole, TrackingDestination
from tracking.event.model import EventKind, TrackingEvent

logger = structlog.get_logger(__name__)

PixelRuntime = Callable[..., Any]
PixelLoader = Callable[[], PixelRuntime | None]

PIXEL_EVENT_NAMES = {
    EventKind.VIEW_CONTENT: "ViewContent",
    EventKind.ADD_TO_CART: "AddToCart",
    EventKind.BEGIN_CHECKOUT: "InitiateCheckout",
    EventKind.PURCHASE: "Purchase",
    EventKind.SEARCH: "Search",
    EventKind.SIGN_UP: "CompleteRegistration",
    EventKind.GENERATE_LEAD: "Lead",
    EventKind.PAGE_VIEW: "PageView",
}


def pixel_event_name(kind: EventKind) -> str | None:
    return PIXEL_EVENT_NAMES.get(kind)


def build_pixel_params(event: TrackingEvent) -> dict[str, Any]:
    """Pixel parameter object for commerce events."""
    params: dict[str, Any] = {"value": float(event.value), "currency": event.currency}
    if event.items:
        params.update(
            content_ids=event.content_ids,
            content_type="product",
            content_name=event.content_name,
            contents=event.contents,
            num_items=event.num_items,
        )
        if len(event.items) == 1 and event.items[0].category:
            params["content_category"] = event.items[0].category
    if event.kind is EventKind.PURCHASE and event.extra.get("transaction_id"):
        params["order_id"] = event.extra["transaction_id"]
    if event.kind is EventKind.SEARCH and event.extra.get("search_term"):
        params["search_string"] = event.extra["search_term"]
    return params


class PixelDestination(TrackingDestination):
    role = DestinationRole.PIXEL
    name = "pixel"

    def __init__(
        self,
        pixel_id: str | None = None,
        loader: PixelLoader | None = None,
        runtime: PixelRuntime | None = None,
    ) -> None:
        self.pixel_id = pixel_id
        self.loader = loader
        self.runtime = runtime

    @property
    def is_loaded(self) -> bool:
        return self.runtime is not None

    async def initialize(self) -> bool:
        """Load the pixel script, register the pixel id and record the initial PageView."""
        if self.runtime is None:
            if not self.pixel_id:
                logger.info("Pixel not configured, skipping pixel initialization")
                return False
            if self.loader is None:
                logger.warning("No pixel runtime available, pixel events will be skipped", pixel_id=self.pixel_id)
                return False
            self.runtime = self.loader()
            if self.runtime is None:
                logger.warning("Pixel script failed to load", pixel_id=self.pixel_id)
                return False

        if self.pixel_id:
            self.runtime("init", self.pixel_id)
        self.runtime("track", "PageView")
        logger.info("Pixel initialized", pixel_id=self.pixel_id)
        return True

    async def send(self, event: TrackingEvent) -> bool:
        if self.runtime is None:
            logger.debug("Pixel runtime not loaded, skipping event", kind=event.kind.value)
            return False

        if event.kind is EventKind.CUSTOM:
            verb, event_name = "trackCustom", event.name or "CustomEvent"
            params = {**event.extra}
        else:
            event_name = pixel_event_name(event.kind)
            if event_name is None:
                return False
            verb, params = "track", build_pixel_params(event)

        try:
            self.runtime(verb, event_name, params, {"eventID": event.event_id})
        except Exception as exc:
            logger.error("Pixel call failed", event_name=event_name, event_id=event.event_id, error=str(exc))
            return False

        logger.debug("Pixel event tracked", event_name=event_name, event_id=event.event_id)
        return True
