"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- SslcommerzGateway and BkashGateway built from the provider's settings
- any PaymentGateway registered with set_gateway() (FakeGateway in tests)
"""

import httpx

from payments.gateway.bkash_adapter import BkashGateway
from payments.gateway.port import PaymentGateway
from payments.gateway.settings import BkashSettings, SslcommerzSettings
from payments.gateway.sslcommerz_adapter import SslcommerzGateway

_overrides: dict[str, PaymentGateway] = {}


def get_gateway(
    settings,
    client: httpx.AsyncClient | None = None,
    timeout: float = 30.0,
) -> PaymentGateway | None:
    """Return the adapter for a provider's settings, or None for providers without one."""
    if settings.provider_id in _overrides:
        return _overrides[settings.provider_id]
    if isinstance(settings, SslcommerzSettings):
        return SslcommerzGateway(settings, client=client, timeout=timeout)
    if isinstance(settings, BkashSettings):
        return BkashGateway(settings, client=client, timeout=timeout)
    return None


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the adapter used for ``gateway.provider_id`` (useful for tests)."""
    _overrides[gateway.provider_id] = gateway


def reset_gateway() -> None:
    """Reset to the settings-built adapters."""
    _overrides.clear()
