"""Checkout view of the shopper's cart.

The cart itself lives in the client state container; checkout only reads
its lines and clears it once the order can no longer be resubmitted.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from tracking.event.model import TrackingProduct


@dataclass
class Cart:
    items: list[TrackingProduct] = field(default_factory=list)
    cleared: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def subtotal(self) -> Decimal:
        return sum((item.line_total for item in self.items), Decimal("0"))

    def snapshot(self) -> list[dict]:
        """JSON-friendly copy of the lines, stored on the order."""
        return [
            {
                "id": item.id,
                "name": item.name,
                "category": item.category,
                "brand": item.brand,
                "unit_price": str(item.unit_price),
                "quantity": item.quantity,
                "currency": item.currency,
            }
            for item in self.items
        ]

    def clear(self) -> None:
        self.items = []
        self.cleared = True


def products_from_snapshot(lines: list[dict]) -> list[TrackingProduct]:
    return [
        TrackingProduct(
            id=line["id"],
            name=line["name"],
            category=line.get("category"),
            brand=line.get("brand"),
            unit_price=Decimal(str(line["unit_price"])),
            quantity=line["quantity"],
            currency=line.get("currency", "USD"),
        )
        for line in lines
    ]
