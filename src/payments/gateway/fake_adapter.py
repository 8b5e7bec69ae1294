"""Configurable fake payment gateway for development and testing.

Simulates a hosted-page gateway without any external calls. It can be
configured at runtime to succeed or fail, and records every call so tests
can assert on what the orchestrator sent.
"""

from uuid import uuid4

from payments.gateway.port import (
    GatewayErrorKind,
    PaymentGateway,
    PaymentRequest,
    PaymentResponse,
)


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self, provider_id: str = "fake", display_name: str = "Fake Gateway") -> None:
        self.provider_id = provider_id
        self.display_name = display_name
        self.should_succeed: bool = True
        self.failure_reason: str = "Payment declined"
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Payment declined") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    async def initiate(self, request: PaymentRequest) -> PaymentResponse:
        self.calls.append({"method": "initiate", "order_id": request.order_id, "amount": request.amount})

        if self.should_succeed:
            transaction_id = f"fake_txn_{uuid4().hex[:12]}"
            return PaymentResponse.redirect(
                f"https://pay.example.test/session/{transaction_id}?order_id={request.order_id}",
                transaction_id,
            )
        return PaymentResponse.failed(GatewayErrorKind.PROTOCOL, self.failure_reason, self.provider_id)

    async def check_connection(self) -> bool:
        self.calls.append({"method": "check_connection"})
        return self.should_succeed
