"""Payment gateway port (abstract interface).

Defines the contract that all payment gateway adapters must implement.
Every outcome, failures included, comes back as a ``PaymentResponse``:
configuration, transport, protocol and timeout problems are typed values
on ``response.failure``, never raised exceptions.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


@dataclass(frozen=True)
class Customer:
    name: str
    phone: str
    address: str
    email: str | None = None
    city: str | None = None
    country: str | None = None


@dataclass(frozen=True)
class PaymentRequest:
    amount: Decimal
    currency: str
    order_id: str
    customer: Customer
    success_url: str
    fail_url: str
    cancel_url: str


class GatewayErrorKind(Enum):
    CONFIGURATION = "configuration"
    TRANSPORT = "transport"
    PROTOCOL = "protocol"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class GatewayError:
    kind: GatewayErrorKind
    message: str
    provider_id: str | None = None


@dataclass(frozen=True)
class PaymentResponse:
    """Result of a payment initiation. ``success`` means the caller must redirect to ``payment_url``."""

    success: bool
    payment_url: str | None = None
    transaction_id: str | None = None
    error: str | None = None
    failure: GatewayError | None = None

    def __post_init__(self):
        if self.success and not self.payment_url:
            raise ValueError("A successful payment response must carry a payment_url")

    @classmethod
    def redirect(cls, payment_url: str, transaction_id: str | None) -> "PaymentResponse":
        return cls(success=True, payment_url=payment_url, transaction_id=transaction_id)

    @classmethod
    def failed(cls, kind: GatewayErrorKind, message: str, provider_id: str | None = None) -> "PaymentResponse":
        return cls(success=False, error=message, failure=GatewayError(kind, message, provider_id))


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    provider_id: str
    display_name: str

    @abstractmethod
    async def initiate(self, request: PaymentRequest) -> PaymentResponse:
        """Open a hosted payment session for the order."""
        ...

    @abstractmethod
    async def check_connection(self) -> bool:
        """Verify that the stored credentials are accepted by the provider."""
        ...
