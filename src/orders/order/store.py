"""Order store port and its protean-backed adapter.

Checkout only needs a handful of operations from the persistence service;
``OrderStore`` names them, ``ProteanOrderStore`` implements them against the
``orders`` domain repository. Calls must run inside an active ``orders``
domain context.
"""

from abc import ABC, abstractmethod

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from orders.order.order import Order


class OrderNotFoundError(Exception):
    def __init__(self, order_id: str) -> None:
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id


class OrderStore(ABC):
    @abstractmethod
    async def create(self, **order_data) -> Order: ...

    @abstractmethod
    async def get(self, order_id: str) -> Order: ...

    @abstractmethod
    async def record_transaction(self, order_id: str, transaction_id: str) -> Order: ...

    @abstractmethod
    async def mark_paid(self, order_id: str, transaction_id: str | None = None) -> Order: ...

    @abstractmethod
    async def mark_payment_failed(self, order_id: str) -> Order: ...


class ProteanOrderStore(OrderStore):
    def _repo(self):
        return current_domain.repository_for(Order)

    async def create(self, **order_data) -> Order:
        order = Order.create(**order_data)
        self._repo().add(order)
        return order

    async def get(self, order_id: str) -> Order:
        try:
            return self._repo().get(order_id)
        except ObjectNotFoundError as exc:
            raise OrderNotFoundError(order_id) from exc

    async def record_transaction(self, order_id: str, transaction_id: str) -> Order:
        order = await self.get(order_id)
        order.record_transaction(transaction_id)
        self._repo().add(order)
        return order

    async def mark_paid(self, order_id: str, transaction_id: str | None = None) -> Order:
        order = await self.get(order_id)
        order.mark_paid(transaction_id)
        self._repo().add(order)
        return order

    async def mark_payment_failed(self, order_id: str) -> Order:
        order = await self.get(order_id)
        order.mark_payment_failed()
        self._repo().add(order)
        return order
