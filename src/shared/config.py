"""Environment-driven configuration for checkout and tracking.

Values are read once with ``from_env()`` and passed around as immutable
objects; nothing here is re-read mid-session.
"""

import os
from dataclasses import dataclass
from decimal import Decimal


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


@dataclass(frozen=True)
class CheckoutConfig:
    """Storefront-wide checkout parameters."""

    currency: str = "BDT"
    delivery_charge: Decimal = Decimal("150")
    public_url: str = "http://localhost:8000"
    gateway_timeout: float = 30.0

    @classmethod
    def from_env(cls) -> "CheckoutConfig":
        return cls(
            currency=os.getenv("CHECKOUT_CURRENCY", "BDT").upper(),
            delivery_charge=Decimal(os.getenv("CHECKOUT_DELIVERY_CHARGE", "150")),
            public_url=os.getenv("CHECKOUT_PUBLIC_URL", "http://localhost:8000").rstrip("/"),
            gateway_timeout=_env_float("GATEWAY_TIMEOUT_SECONDS", 30.0),
        )

    def callback_urls(self, order_id: str) -> dict[str, str]:
        """Provider redirect targets, each carrying the order id as a query parameter."""
        return {
            "success_url": f"{self.public_url}/payments/success?order_id={order_id}",
            "fail_url": f"{self.public_url}/payments/fail?order_id={order_id}",
            "cancel_url": f"{self.public_url}/payments/cancel?order_id={order_id}",
        }


@dataclass(frozen=True)
class TrackingConfig:
    """Credentials and timings for the analytics/ads destinations."""

    pixel_id: str | None = None
    access_token: str | None = None
    api_version: str = "18.0"
    container_id: str | None = None
    default_currency: str = "USD"
    activation_timeout: float = 10.0
    send_timeout: float = 10.0

    @classmethod
    def from_env(cls) -> "TrackingConfig":
        return cls(
            pixel_id=os.getenv("FB_PIXEL_ID") or None,
            access_token=os.getenv("FB_ACCESS_TOKEN") or None,
            api_version=os.getenv("FB_API_VERSION", "18.0"),
            container_id=os.getenv("GTM_CONTAINER_ID") or None,
            default_currency=os.getenv("TRACKING_DEFAULT_CURRENCY", "USD").upper(),
            activation_timeout=_env_float("TRACKING_ACTIVATION_TIMEOUT", 10.0),
            send_timeout=_env_float("TRACKING_SEND_TIMEOUT", 10.0),
        )

    @property
    def conversions_api_configured(self) -> bool:
        return bool(self.pixel_id and self.access_token)
