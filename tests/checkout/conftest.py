from decimal import Decimal

import pytest
from checkout.cart import Cart
from checkout.orchestrator import CheckoutOrchestrator
from orders.order.store import ProteanOrderStore
from payments.gateway import set_gateway
from payments.gateway.fake_adapter import FakeGateway
from payments.gateway.port import Customer
from payments.gateway.settings import (
    BkashSettings,
    CashOnDeliverySettings,
    PaymentSettings,
    SslcommerzSettings,
)
from shared.config import CheckoutConfig
from tracking.activation import LazyActivationGate
from tracking.composer import EventComposer
from tracking.destination.fake_adapter import FakeDestination
from tracking.destination.port import DestinationRole
from tracking.event.model import EventKind, TrackingProduct


@pytest.fixture(autouse=True)
def _ctx(orders_bed):
    with orders_bed.domain_context():
        yield

        from protean import current_domain

        for _, provider in current_domain.providers.items():
            provider._data_reset()


@pytest.fixture()
def destinations():
    return [FakeDestination(role) for role in DestinationRole]


@pytest.fixture()
def gate(destinations):
    return LazyActivationGate(destinations)


@pytest.fixture()
def composer(destinations, gate):
    return EventComposer(destinations, gate=gate, default_currency="BDT")


@pytest.fixture()
def payment_settings():
    return PaymentSettings(
        gateways=(
            CashOnDeliverySettings(),
            SslcommerzSettings(enabled=True, store_id="teststore", store_password="secret"),
            BkashSettings(enabled=False),
        )
    )


@pytest.fixture()
def checkout_config():
    return CheckoutConfig(currency="BDT", delivery_charge=Decimal("150"), public_url="https://shop.example")


@pytest.fixture()
def sslcommerz():
    gateway = FakeGateway(provider_id="sslcommerz", display_name="SSLCOMMERZ")
    set_gateway(gateway)
    return gateway


@pytest.fixture()
def orchestrator(composer, gate, payment_settings, checkout_config):
    return CheckoutOrchestrator(
        order_store=ProteanOrderStore(),
        composer=composer,
        gate=gate,
        payment_settings=payment_settings,
        config=checkout_config,
    )


@pytest.fixture()
def cart():
    panjabi = TrackingProduct(
        id="sku-1",
        name="Panjabi",
        category="Menswear",
        unit_price=Decimal("1000"),
        currency="BDT",
    )
    return Cart(items=[panjabi])


@pytest.fixture()
def customer():
    return Customer(
        name="Rahim Uddin",
        phone="01711000000",
        address="House 1, Road 2, Dhanmondi",
        email="rahim@example.com",
    )


@pytest.fixture()
def purchases(destinations):
    """Purchase events received so far, per destination name."""

    def collect() -> dict[str, list]:
        return {
            destination.name: [e for e in destination.sent_events if e.kind is EventKind.PURCHASE]
            for destination in destinations
        }

    return collect
