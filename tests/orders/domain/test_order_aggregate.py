"""Tests for the Order aggregate's payment outcomes."""

import pytest
from orders.order.order import Order, OrderStatus, PaymentStatus
from protean.exceptions import ValidationError

ITEMS = [{"id": "sku-1", "name": "Panjabi", "unit_price": "1000", "quantity": 1, "currency": "BDT"}]


def _order(**overrides):
    defaults = {
        "customer_name": "Rahim Uddin",
        "customer_phone": "01711000000",
        "payment_method": "sslcommerz",
        "items_data": ITEMS,
        "subtotal": 1000,
        "delivery_charge": 150,
    }
    defaults.update(overrides)
    return Order.create(**defaults)


class TestCreate:
    def test_total_is_subtotal_plus_delivery(self):
        order = _order()
        assert order.subtotal == 1000.0
        assert order.delivery_charge == 150.0
        assert order.total == 1150.0

    def test_new_order_is_pending_and_unpaid(self):
        order = _order()
        assert order.status == OrderStatus.PENDING.value
        assert order.payment_status == PaymentStatus.UNPAID.value
        assert not order.is_paid
        assert not order.is_cancelled

    def test_line_items_round_trip(self):
        assert _order().line_items == ITEMS

    def test_defaults(self):
        order = _order()
        assert order.currency == "BDT"
        assert order.created_at is not None

    def test_payment_method_required(self):
        with pytest.raises(ValidationError):
            _order(payment_method=None)


class TestMarkPaid:
    def test_mark_paid(self):
        order = _order()
        order.mark_paid("val-123")

        assert order.is_paid
        assert order.status == OrderStatus.PENDING.value
        assert order.transaction_id == "val-123"

    def test_mark_paid_keeps_recorded_transaction(self):
        order = _order()
        order.record_transaction("SESS123")
        order.mark_paid()

        assert order.transaction_id == "SESS123"

    def test_payment_session_exists_once_transaction_recorded(self):
        order = _order()
        assert not order.has_payment_session

        order.record_transaction("SESS123")
        assert order.has_payment_session

    def test_cannot_pay_twice(self):
        order = _order()
        order.mark_paid()

        with pytest.raises(ValidationError) as exc:
            order.mark_paid()
        assert "payment_status" in exc.value.messages

    def test_cancelled_order_cannot_be_paid(self):
        order = _order()
        order.mark_payment_failed()

        with pytest.raises(ValidationError) as exc:
            order.mark_paid()
        assert "status" in exc.value.messages


class TestMarkPaymentFailed:
    def test_failed_payment_cancels_order(self):
        order = _order()
        order.mark_payment_failed()

        assert order.status == OrderStatus.CANCELLED.value
        assert order.payment_status == PaymentStatus.UNPAID.value
        assert order.is_cancelled

    def test_paid_order_cannot_fail(self):
        order = _order()
        order.mark_paid()

        with pytest.raises(ValidationError):
            order.mark_payment_failed()

    def test_cancelled_is_terminal(self):
        order = _order()
        order.mark_payment_failed()

        with pytest.raises(ValidationError) as exc:
            order.mark_payment_failed()
        assert "Cannot transition from cancelled to cancelled" in exc.value.messages["status"][0]
