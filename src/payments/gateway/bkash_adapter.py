"""bKash adapter — tokenized checkout (token exchange).

Two calls per payment:

1. ``POST /tokenized/checkout/token/grant`` exchanges app credentials for a
   short-lived ``id_token``. No token means no payment; the create step is
   never attempted.
2. ``POST /tokenized/checkout/create`` authorized with that token opens the
   payment; ``paymentID`` + ``bkashURL`` come back on success.
"""

from decimal import Decimal

import httpx
import structlog

from payments.gateway.port import (
    GatewayErrorKind,
    PaymentGateway,
    PaymentRequest,
    PaymentResponse,
)
from payments.gateway.settings import BkashSettings
from payments.gateway.transport import client_session, json_body

logger = structlog.get_logger(__name__)

GRANT_PATH = "/tokenized/checkout/token/grant"
CREATE_PATH = "/tokenized/checkout/create"


class TokenGrantError(Exception):
    """The grant endpoint answered without an ``id_token``."""


class BkashGateway(PaymentGateway):
    provider_id = "bkash"
    display_name = "bKash"

    def __init__(
        self,
        settings: BkashSettings,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.settings = settings
        self.client = client
        self.timeout = timeout

    def _not_enabled(self) -> PaymentResponse | None:
        if not self.settings.enabled or not self.settings.has_credentials:
            return PaymentResponse.failed(
                GatewayErrorKind.CONFIGURATION, f"{self.display_name} is not enabled", self.provider_id
            )
        return None

    async def _grant_token(self, client: httpx.AsyncClient) -> str:
        response = await client.post(
            f"{self.settings.resolved_base_url}{GRANT_PATH}",
            headers={
                "Accept": "application/json",
                "username": self.settings.username,
                "password": self.settings.password,
            },
            json={"app_key": self.settings.app_key, "app_secret": self.settings.app_secret},
            timeout=self.timeout,
        )
        token = json_body(response).get("id_token")
        if not token:
            raise TokenGrantError(f"grant returned HTTP {response.status_code} without id_token")
        return token

    def create_body(self, request: PaymentRequest) -> dict[str, str]:
        return {
            "mode": "0011",
            "payerReference": request.customer.phone,
            "callbackURL": request.success_url,
            "amount": f"{Decimal(request.amount).quantize(Decimal('0.01'))}",
            "currency": request.currency,
            "intent": "sale",
            "merchantInvoiceNumber": request.order_id,
        }

    async def initiate(self, request: PaymentRequest) -> PaymentResponse:
        if (failure := self._not_enabled()) is not None:
            return failure

        log = logger.bind(provider=self.provider_id, order_id=request.order_id)

        try:
            async with client_session(self.client, self.timeout) as client:
                try:
                    token = await self._grant_token(client)
                except TokenGrantError as exc:
                    log.warning("bKash token grant failed", reason=str(exc))
                    return PaymentResponse.failed(
                        GatewayErrorKind.PROTOCOL, "Failed to get bKash access token", self.provider_id
                    )

                response = await client.post(
                    f"{self.settings.resolved_base_url}{CREATE_PATH}",
                    headers={
                        "Accept": "application/json",
                        "authorization": token,
                        "x-app-key": self.settings.app_key,
                    },
                    json=self.create_body(request),
                    timeout=self.timeout,
                )
        except httpx.TimeoutException:
            log.error("bKash request timed out", timeout=self.timeout)
            return PaymentResponse.failed(GatewayErrorKind.TIMEOUT, "bKash did not respond in time", self.provider_id)
        except httpx.HTTPError as exc:
            log.error("bKash initialization error", error=str(exc))
            return PaymentResponse.failed(
                GatewayErrorKind.TRANSPORT, "Failed to initialize bKash payment", self.provider_id
            )

        result = json_body(response)
        if result.get("paymentID") and result.get("bkashURL"):
            log.info("bKash payment created", payment_id=result["paymentID"])
            return PaymentResponse.redirect(result["bkashURL"], result["paymentID"])

        reason = result.get("errorMessage") or result.get("statusMessage") or "bKash payment creation failed"
        log.warning("bKash payment creation rejected", status_code=response.status_code, reason=reason)
        return PaymentResponse.failed(GatewayErrorKind.PROTOCOL, reason, self.provider_id)

    async def check_connection(self) -> bool:
        if self._not_enabled() is not None:
            return False
        try:
            async with client_session(self.client, self.timeout) as client:
                await self._grant_token(client)
        except (httpx.HTTPError, TokenGrantError) as exc:
            logger.error("Error testing bKash connection", error=str(exc))
            return False
        return True
