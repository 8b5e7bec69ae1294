"""Canonical tracking model — the envelope every destination translates from.

A ``TrackingEvent`` is built once per logical occurrence (one add-to-cart,
one purchase) and handed unchanged to every destination, so the
``event_id`` it carries is the cross-destination deduplication key.
Events are created, dispatched and discarded within one call.
"""

import time
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EventKind(Enum):
    VIEW_CONTENT = "ViewContent"
    ADD_TO_CART = "AddToCart"
    REMOVE_FROM_CART = "RemoveFromCart"
    BEGIN_CHECKOUT = "BeginCheckout"
    PURCHASE = "Purchase"
    SEARCH = "Search"
    SIGN_UP = "SignUp"
    LOGIN = "Login"
    GENERATE_LEAD = "GenerateLead"
    PAGE_VIEW = "PageView"
    VIEW_ITEM_LIST = "ViewItemList"
    SELECT_ITEM = "SelectItem"
    CUSTOM = "Custom"


# Kinds that fund or attribute revenue; tracking must be live before they go out.
REVENUE_KINDS = frozenset({EventKind.ADD_TO_CART, EventKind.BEGIN_CHECKOUT, EventKind.PURCHASE})


def new_event_id() -> str:
    return uuid4().hex


class TrackingProduct(BaseModel):
    """A product line as seen by analytics destinations."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str
    category: str | None = None
    brand: str | None = None
    variant: str | None = None
    unit_price: Decimal = Field(ge=0)
    quantity: int = Field(default=1, ge=1)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    list_id: str | None = None
    list_name: str | None = None
    index: int | None = None

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, value: str) -> str:
        return value.upper()

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


class TrackingUser(BaseModel):
    """Optional identity bundle; presence of a field drives which hashed keys are sent."""

    model_config = ConfigDict(frozen=True)

    user_id: str | None = None
    email: str | None = None
    phone: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    country: str | None = None

    def __repr_args__(self):
        # Field names only: identity values must not leak into logs or tracebacks
        for name, value in super().__repr_args__():
            yield name, "***" if value is not None else None


class TrackingEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: EventKind
    event_id: str = Field(default_factory=new_event_id)
    occurred_at: int = Field(default_factory=lambda: int(time.time()))
    currency: str
    value: Decimal = Decimal("0")
    items: tuple[TrackingProduct, ...] = ()
    user: TrackingUser | None = None
    source_url: str | None = None
    name: str | None = None  # Custom events only
    extra: dict[str, Any] = Field(default_factory=dict)

    @property
    def content_ids(self) -> list[str]:
        return [item.id for item in self.items]

    @property
    def num_items(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def content_name(self) -> str | None:
        if not self.items:
            return None
        if len(self.items) == 1:
            return self.items[0].name
        return f"{len(self.items)} products"

    @property
    def contents(self) -> list[dict]:
        return [{"id": item.id, "quantity": item.quantity, "item_price": float(item.unit_price)} for item in self.items]
