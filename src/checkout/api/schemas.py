"""Pydantic request/response schemas for the Checkout API.

These are external contracts, kept apart from the orchestrator's own
dataclasses and the ``orders`` aggregate.
"""

from decimal import Decimal

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class CartLineSchema(BaseModel):
    product_id: str
    name: str
    category: str | None = None
    brand: str | None = None
    unit_price: Decimal = Field(ge=0)
    quantity: int = Field(ge=1, default=1)


class CustomerSchema(BaseModel):
    name: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    address: str = Field(min_length=1)
    email: str | None = None
    city: str | None = None
    country: str | None = None


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------
class PlaceOrderRequest(BaseModel):
    items: list[CartLineSchema] = Field(min_length=1)
    customer: CustomerSchema
    payment_method: str = "cod"

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "items": [{"product_id": "sku-1", "name": "Panjabi", "unit_price": "1000", "quantity": 1}],
                    "customer": {"name": "Rahim Uddin", "phone": "01711000000", "address": "House 1, Road 2"},
                    "payment_method": "cod",
                }
            ]
        }
    }


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class PlaceOrderResponse(BaseModel):
    success: bool
    state: str
    order_id: str | None = None
    payment_url: str | None = None
    error: str | None = None


class PaymentMethodSchema(BaseModel):
    id: str
    name: str
    enabled: bool


class PaymentMethodsResponse(BaseModel):
    methods: list[PaymentMethodSchema]


class PaymentOutcomeResponse(BaseModel):
    order_id: str
    state: str
    status: str
    payment_status: str
    error: str | None = None
