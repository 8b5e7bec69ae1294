"""Order aggregate (CQRS) — the record checkout creates and finalizes.

Only the payment outcome fields are driven from checkout:

    status:          pending → cancelled          (failed/cancelled payment)
    payment_status:  unpaid  → paid               (gateway success callback)

Cash-on-delivery orders stay ``pending/unpaid`` until fulfilment, which is
handled elsewhere.
"""

import json
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, String, Text

from orders.domain import orders


class OrderStatus(Enum):
    PENDING = "pending"
    CANCELLED = "cancelled"


class PaymentStatus(Enum):
    UNPAID = "unpaid"
    PAID = "paid"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CANCELLED},
    OrderStatus.CANCELLED: set(),  # Terminal
}


@orders.aggregate
class Order:
    customer_name = String(required=True, max_length=255)
    customer_phone = String(required=True, max_length=50)
    customer_email = String(max_length=255)
    shipping_address = Text()
    items = Text()  # JSON array of {id, name, category, unit_price, quantity}
    subtotal = Float(default=0.0, min_value=0.0)
    delivery_charge = Float(default=0.0, min_value=0.0)
    total = Float(default=0.0, min_value=0.0)
    currency = String(max_length=3, default="BDT")
    payment_method = String(max_length=50, required=True)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.UNPAID.value)
    transaction_id = String(max_length=255)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        customer_name,
        customer_phone,
        payment_method,
        items_data,
        subtotal,
        delivery_charge,
        currency="BDT",
        customer_email=None,
        shipping_address=None,
    ):
        """Create a pending, unpaid order. Total is subtotal plus delivery charge."""
        now = datetime.now(UTC)
        subtotal = Decimal(str(subtotal))
        delivery_charge = Decimal(str(delivery_charge))
        return cls(
            customer_name=customer_name,
            customer_phone=customer_phone,
            customer_email=customer_email,
            shipping_address=shipping_address,
            items=json.dumps(items_data),
            subtotal=float(subtotal),
            delivery_charge=float(delivery_charge),
            total=float(subtotal + delivery_charge),
            currency=currency,
            payment_method=payment_method,
            status=OrderStatus.PENDING.value,
            payment_status=PaymentStatus.UNPAID.value,
            created_at=now,
            updated_at=now,
        )

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def line_items(self) -> list[dict]:
        return json.loads(self.items) if self.items else []

    @property
    def is_paid(self) -> bool:
        return PaymentStatus(self.payment_status) == PaymentStatus.PAID

    @property
    def is_cancelled(self) -> bool:
        return OrderStatus(self.status) == OrderStatus.CANCELLED

    @property
    def has_payment_session(self) -> bool:
        """A gateway accepted the order and handed back a session to pay it on."""
        return bool(self.transaction_id)

    # -------------------------------------------------------------------
    # Payment outcomes
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status):
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def mark_paid(self, transaction_id=None):
        """Record a successful gateway payment."""
        if self.is_cancelled:
            raise ValidationError({"status": ["A cancelled order cannot be marked paid"]})
        if self.is_paid:
            raise ValidationError({"payment_status": ["Order is already paid"]})

        self.payment_status = PaymentStatus.PAID.value
        if transaction_id:
            self.transaction_id = transaction_id
        self.updated_at = datetime.now(UTC)

    def mark_payment_failed(self):
        """Record a failed or cancelled gateway payment; the order is cancelled and stays unpaid."""
        if self.is_paid:
            raise ValidationError({"payment_status": ["A paid order cannot be cancelled by a payment failure"]})
        self._assert_can_transition(OrderStatus.CANCELLED)

        self.status = OrderStatus.CANCELLED.value
        self.payment_status = PaymentStatus.UNPAID.value
        self.updated_at = datetime.now(UTC)

    def record_transaction(self, transaction_id):
        """Keep the gateway session id so callbacks can be reconciled."""
        self.transaction_id = transaction_id
        self.updated_at = datetime.now(UTC)
