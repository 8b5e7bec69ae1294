"""Payment gateway settings — one tagged variant per provider.

Each variant only holds its own provider's credentials, so an adapter can
never read another provider's secrets. Settings are loaded once per
checkout session and are immutable for its duration.
"""

import os
from typing import Annotated, Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class _BaseGatewaySettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    sandbox_mode: bool = True
    base_url: str | None = None

    @property
    def has_credentials(self) -> bool:
        return True


class SslcommerzSettings(_BaseGatewaySettings):
    provider_id: Literal["sslcommerz"] = "sslcommerz"
    display_name: ClassVar[str] = "SSLCOMMERZ"
    store_id: str = ""
    store_password: str = Field(default="", repr=False)

    @property
    def has_credentials(self) -> bool:
        return bool(self.store_id and self.store_password)

    @property
    def resolved_base_url(self) -> str:
        if self.base_url:
            return self.base_url.rstrip("/")
        return "https://sandbox.sslcommerz.com" if self.sandbox_mode else "https://securepay.sslcommerz.com"


class BkashSettings(_BaseGatewaySettings):
    provider_id: Literal["bkash"] = "bkash"
    display_name: ClassVar[str] = "bKash"
    app_key: str = ""
    app_secret: str = Field(default="", repr=False)
    username: str = ""
    password: str = Field(default="", repr=False)

    @property
    def has_credentials(self) -> bool:
        return all((self.app_key, self.app_secret, self.username, self.password))

    @property
    def resolved_base_url(self) -> str:
        if self.base_url:
            return self.base_url.rstrip("/")
        if self.sandbox_mode:
            return "https://tokenized.sandbox.bka.sh/v1.2.0-beta"
        return "https://tokenized.pay.bka.sh/v1.2.0-beta"


class CashOnDeliverySettings(_BaseGatewaySettings):
    """Pseudo-provider: no gateway call, the order completes unpaid."""

    provider_id: Literal["cod"] = "cod"
    display_name: ClassVar[str] = "Cash on Delivery"
    enabled: bool = True
    sandbox_mode: bool = False


GatewaySettings = Annotated[
    SslcommerzSettings | BkashSettings | CashOnDeliverySettings,
    Field(discriminator="provider_id"),
]

_gateway_settings_adapter = TypeAdapter(GatewaySettings)

CASH_ON_DELIVERY = "cod"


def parse_gateway_settings(data: dict[str, Any]) -> SslcommerzSettings | BkashSettings | CashOnDeliverySettings:
    """Validate one provider record, picking the variant from ``provider_id``."""
    return _gateway_settings_adapter.validate_python(data)


class PaymentSettings(BaseModel):
    """All gateway variants configured for the store."""

    model_config = ConfigDict(frozen=True)

    gateways: tuple[GatewaySettings, ...] = ()

    def get(self, provider_id: str):
        return next((g for g in self.gateways if g.provider_id == provider_id), None)

    def is_enabled(self, provider_id: str) -> bool:
        settings = self.get(provider_id)
        return settings is not None and settings.enabled

    @property
    def any_online_gateway_enabled(self) -> bool:
        return any(g.enabled for g in self.gateways if g.provider_id != CASH_ON_DELIVERY)

    def available_methods(self) -> list[dict[str, Any]]:
        """Enabled payment methods in display order."""
        return [
            {"id": g.provider_id, "name": g.display_name, "enabled": True}
            for g in self.gateways
            if g.enabled
        ]

    @classmethod
    def from_store_settings(cls, row: dict[str, Any], cash_on_delivery: bool = True) -> "PaymentSettings":
        """Convert the flat ``store_settings`` record into tagged variants."""
        gateways = [
            SslcommerzSettings(
                enabled=bool(row.get("sslcommerz_enabled")),
                sandbox_mode=bool(row.get("sslcommerz_sandbox_mode", True)),
                store_id=row.get("sslcommerz_store_id") or "",
                store_password=row.get("sslcommerz_store_password") or "",
            ),
            BkashSettings(
                enabled=bool(row.get("bkash_enabled")),
                sandbox_mode=bool(row.get("bkash_sandbox_mode", True)),
                app_key=row.get("bkash_app_key") or "",
                app_secret=row.get("bkash_app_secret") or "",
                username=row.get("bkash_username") or "",
                password=row.get("bkash_password") or "",
            ),
        ]
        if cash_on_delivery:
            gateways.insert(0, CashOnDeliverySettings())
        return cls(gateways=tuple(gateways))

    @classmethod
    def from_env(cls) -> "PaymentSettings":
        def flag(name: str, default: str = "false") -> bool:
            return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")

        row = {
            "sslcommerz_enabled": flag("SSLCOMMERZ_ENABLED"),
            "sslcommerz_sandbox_mode": flag("SSLCOMMERZ_SANDBOX", "true"),
            "sslcommerz_store_id": os.getenv("SSLCOMMERZ_STORE_ID"),
            "sslcommerz_store_password": os.getenv("SSLCOMMERZ_STORE_PASSWORD"),
            "bkash_enabled": flag("BKASH_ENABLED"),
            "bkash_sandbox_mode": flag("BKASH_SANDBOX", "true"),
            "bkash_app_key": os.getenv("BKASH_APP_KEY"),
            "bkash_app_secret": os.getenv("BKASH_APP_SECRET"),
            "bkash_username": os.getenv("BKASH_USERNAME"),
            "bkash_password": os.getenv("BKASH_PASSWORD"),
        }
        return cls.from_store_settings(row, cash_on_delivery=flag("COD_ENABLED", "true"))
