import json
from decimal import Decimal

import httpx
import pytest
from payments.gateway.port import Customer, PaymentRequest
from payments.gateway.settings import BkashSettings, SslcommerzSettings


class RecordingTransport:
    """Routes requests by URL path to canned responses and keeps them for assertions."""

    def __init__(self, routes: dict | None = None) -> None:
        self.routes = routes or {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, json={"message": "not found"})
        if isinstance(route, Exception):
            raise route
        if callable(route):
            return route(request)
        status_code, body = route
        return httpx.Response(status_code, json=body)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]

    def json_of(self, path: str) -> dict:
        request = next(r for r in self.requests if r.url.path == path)
        return json.loads(request.content)


@pytest.fixture()
def customer():
    return Customer(name="Rahim Uddin", phone="01711000000", address="House 1, Road 2, Dhanmondi")


@pytest.fixture()
def payment_request(customer):
    return PaymentRequest(
        amount=Decimal("1150"),
        currency="BDT",
        order_id="ord-001",
        customer=customer,
        success_url="https://shop.example/payments/success?order_id=ord-001",
        fail_url="https://shop.example/payments/fail?order_id=ord-001",
        cancel_url="https://shop.example/payments/cancel?order_id=ord-001",
    )


@pytest.fixture()
def sslcommerz_settings():
    return SslcommerzSettings(enabled=True, sandbox_mode=True, store_id="teststore", store_password="secret")


@pytest.fixture()
def bkash_settings():
    return BkashSettings(
        enabled=True,
        sandbox_mode=True,
        app_key="app-key",
        app_secret="app-secret",
        username="merchant",
        password="merchant-pass",
    )


@pytest.fixture()
def make_transport():
    return RecordingTransport
