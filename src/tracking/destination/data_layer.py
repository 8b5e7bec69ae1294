"""Web analytics layer destination — the tag-manager data layer.

Events are flattened into GA4-style records and appended to a shared,
append-only queue that an external tag-management runtime drains. The
adapter owns no network call.
"""

from collections import deque
from datetime import UTC, datetime
from typing import Any

import structlog

from tracking.destination.port import DestinationRole, TrackingDestination
from tracking.event.hashing import hash_user
from tracking.event.model import EventKind, TrackingEvent, TrackingProduct

logger = structlog.get_logger(__name__)

GA4_EVENT_NAMES = {
    EventKind.VIEW_CONTENT: "view_item",
    EventKind.ADD_TO_CART: "add_to_cart",
    EventKind.REMOVE_FROM_CART: "remove_from_cart",
    EventKind.BEGIN_CHECKOUT: "begin_checkout",
    EventKind.PURCHASE: "purchase",
    EventKind.SEARCH: "search",
    EventKind.SIGN_UP: "sign_up",
    EventKind.LOGIN: "login",
    EventKind.GENERATE_LEAD: "generate_lead",
    EventKind.PAGE_VIEW: "page_view",
    EventKind.VIEW_ITEM_LIST: "view_item_list",
    EventKind.SELECT_ITEM: "select_item",
}


DEFAULT_MAX_RECORDS = 1000


class DataLayer:
    """Append-only record queue shared by everything in the process.

    Producers only ``push``; the tag-management consumer takes records with
    ``drain``. The queue is bounded: when the consumer falls behind, the
    oldest undrained records are dropped first.
    """

    def __init__(self, max_records: int = DEFAULT_MAX_RECORDS) -> None:
        self._records: deque[dict[str, Any]] = deque(maxlen=max_records)

    @property
    def max_records(self) -> int:
        return self._records.maxlen

    def push(self, record: dict[str, Any]) -> int:
        self._records.append(dict(record))
        return len(self._records)

    def drain(self) -> list[dict[str, Any]]:
        """Hand every pending record to the consumer, oldest first, and forget them."""
        drained = []
        while self._records:
            drained.append(self._records.popleft())
        return drained

    @property
    def records(self) -> tuple[dict[str, Any], ...]:
        return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def reset(self) -> None:
        """Drop all records (tests only)."""
        self._records.clear()


data_layer = DataLayer()


def _ga4_item(product: TrackingProduct) -> dict[str, Any]:
    item = {
        "item_id": product.id,
        "item_name": product.name,
        "price": float(product.unit_price),
        "quantity": product.quantity,
        "currency": product.currency,
        "item_category": product.category,
        "item_brand": product.brand,
        "item_variant": product.variant,
        "item_list_id": product.list_id,
        "item_list_name": product.list_name,
        "index": product.index,
    }
    return {key: value for key, value in item.items() if value is not None}


def event_name_for(event: TrackingEvent) -> str:
    if event.kind is EventKind.CUSTOM:
        return event.name or "custom_event"
    return GA4_EVENT_NAMES[event.kind]


class DataLayerDestination(TrackingDestination):
    role = DestinationRole.ANALYTICS_LAYER
    name = "data_layer"

    def __init__(self, layer: DataLayer | None = None, container_id: str | None = None) -> None:
        self.layer = layer if layer is not None else data_layer
        self.container_id = container_id
        self._bootstrapped = False

    async def initialize(self) -> bool:
        """Push the tag-manager bootstrap record so the container starts consuming."""
        if not self.container_id:
            logger.info("Tag manager container not configured, data layer runs headless")
            return False
        if not self._bootstrapped:
            now_ms = int(datetime.now(UTC).timestamp() * 1000)
            self.layer.push({"gtm.start": now_ms, "event": "gtm.js", "container_id": self.container_id})
            self._bootstrapped = True
        return True

    def build_record(self, event: TrackingEvent) -> dict[str, Any]:
        record: dict[str, Any] = {
            "event": event_name_for(event),
            "timestamp": datetime.fromtimestamp(event.occurred_at, UTC).isoformat(),
            "event_id": event.event_id,
        }
        if event.items or event.kind is not EventKind.CUSTOM:
            record["currency"] = event.currency
            record["value"] = float(event.value)
        if event.items:
            record["items"] = [_ga4_item(item) for item in event.items]

        user_data = hash_user(event.user)
        if user_data:
            record["user_data"] = user_data
        if event.source_url:
            record["page_location"] = event.source_url

        # Canonical fields win over caller-supplied extras
        return {**event.extra, **record}

    async def send(self, event: TrackingEvent) -> bool:
        record = self.build_record(event)
        self.layer.push(record)
        logger.debug("Event pushed to data layer", event_name=record["event"], event_id=event.event_id)
        return True
