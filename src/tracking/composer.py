"""Event composer — builds canonical tracking events and fans them out.

Routing by event kind:

    ViewContent                      → analytics layer, pixel
    AddToCart, BeginCheckout,
    Purchase                         → analytics layer, pixel, conversions API
                                       (activation gate forced first)
    everything else                  → analytics layer

Destinations are called concurrently and independently: a destination that
fails or raises never holds back the others, and tracking failures are
never surfaced to the shopper.
"""

import asyncio
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

import structlog

from tracking.activation import LazyActivationGate
from tracking.destination.port import DestinationRole, TrackingDestination
from tracking.event.model import (
    REVENUE_KINDS,
    EventKind,
    TrackingEvent,
    TrackingProduct,
    TrackingUser,
)

logger = structlog.get_logger(__name__)

_ALL_ROLES = frozenset(DestinationRole)
_ANALYTICS_ONLY = frozenset({DestinationRole.ANALYTICS_LAYER})

DISPATCH_ROUTES: dict[EventKind, frozenset[DestinationRole]] = {
    EventKind.VIEW_CONTENT: frozenset({DestinationRole.ANALYTICS_LAYER, DestinationRole.PIXEL}),
    EventKind.ADD_TO_CART: _ALL_ROLES,
    EventKind.BEGIN_CHECKOUT: _ALL_ROLES,
    EventKind.PURCHASE: _ALL_ROLES,
}

# Params keys that shape the envelope; everything else lands in ``extra``
_ENVELOPE_KEYS = ("currency", "value", "event_id", "source_url", "name")


def routes_for(kind: EventKind) -> frozenset[DestinationRole]:
    return DISPATCH_ROUTES.get(kind, _ANALYTICS_ONLY)


def items_value(items: Iterable[TrackingProduct]) -> Decimal:
    return sum((item.line_total for item in items), Decimal("0"))


@dataclass
class DispatchResult:
    event_id: str
    results: dict[str, bool] = field(default_factory=dict)

    @property
    def delivered(self) -> list[str]:
        return [name for name, ok in self.results.items() if ok]

    @property
    def failed(self) -> list[str]:
        return [name for name, ok in self.results.items() if not ok]

    def __getitem__(self, name: str) -> bool:
        return self.results[name]


class EventComposer:
    def __init__(
        self,
        destinations: Iterable[TrackingDestination],
        gate: LazyActivationGate | None = None,
        default_currency: str = "USD",
    ) -> None:
        self.destinations = list(destinations)
        self.gate = gate
        self.default_currency = default_currency

    def compose(
        self,
        kind: EventKind,
        products: Sequence[TrackingProduct] = (),
        user: TrackingUser | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> TrackingEvent:
        """Build the canonical event; ``value`` is the item total unless overridden."""
        params = dict(params or {})
        envelope = {key: params.pop(key) for key in _ENVELOPE_KEYS if key in params}

        currency = envelope.get("currency") or (products[0].currency if products else self.default_currency)
        value = envelope.get("value")
        value = items_value(products) if value is None else Decimal(str(value))

        event_fields: dict[str, Any] = {
            "kind": kind,
            "currency": currency.upper(),
            "value": value,
            "items": tuple(products),
            "user": user,
            "source_url": envelope.get("source_url"),
            "name": envelope.get("name"),
            "extra": params,
        }
        if envelope.get("event_id"):
            event_fields["event_id"] = envelope["event_id"]
        return TrackingEvent(**event_fields)

    async def dispatch(self, event: TrackingEvent) -> DispatchResult:
        """Fan ``event`` out to the destinations its kind routes to."""
        if event.kind in REVENUE_KINDS and self.gate is not None:
            await self.gate.ensure_ready()

        roles = routes_for(event.kind)
        targets = [destination for destination in self.destinations if destination.role in roles]

        outcomes = await asyncio.gather(
            *(destination.send(event) for destination in targets),
            return_exceptions=True,
        )

        result = DispatchResult(event_id=event.event_id)
        for destination, outcome in zip(targets, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                logger.error(
                    "Tracking destination raised",
                    destination=destination.name,
                    event_id=event.event_id,
                    error=str(outcome),
                )
                result.results[destination.name] = False
            else:
                result.results[destination.name] = bool(outcome)

        logger.debug(
            "Event dispatched",
            kind=event.kind.value,
            event_id=event.event_id,
            delivered=result.delivered,
            failed=result.failed,
        )
        return result

    async def track(
        self,
        kind: EventKind,
        products: Sequence[TrackingProduct] = (),
        user: TrackingUser | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> DispatchResult:
        return await self.dispatch(self.compose(kind, products, user, params))
