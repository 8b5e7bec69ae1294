from decimal import Decimal

import pytest
from tracking.activation import LazyActivationGate
from tracking.composer import EventComposer
from tracking.destination.fake_adapter import FakeDestination
from tracking.destination.port import DestinationRole
from tracking.event.model import TrackingProduct


@pytest.fixture()
def analytics():
    return FakeDestination(DestinationRole.ANALYTICS_LAYER)


@pytest.fixture()
def pixel():
    return FakeDestination(DestinationRole.PIXEL)


@pytest.fixture()
def capi():
    return FakeDestination(DestinationRole.CONVERSIONS_API)


@pytest.fixture()
def destinations(analytics, pixel, capi):
    return [analytics, pixel, capi]


@pytest.fixture()
def gate(destinations):
    return LazyActivationGate(destinations, timeout=10.0)


@pytest.fixture()
def composer(destinations, gate):
    return EventComposer(destinations, gate=gate, default_currency="USD")


@pytest.fixture()
def tee():
    return TrackingProduct(id="sku-1", name="Cotton Tee", category="Apparel", unit_price=Decimal("12.75"), quantity=2)
