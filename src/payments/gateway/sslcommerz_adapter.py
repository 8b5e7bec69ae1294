"""SSLCOMMERZ adapter — form-POST hosted payment page.

Merchant credentials and order fields are posted as multipart form data to
the session endpoint; a ``SUCCESS`` status returns the hosted page URL the
shopper is redirected to, with the session key as transaction id.
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
from payments.gateway.settings import SslcommerzSettings
from payments.gateway.transport import client_session, json_body

logger = structlog.get_logger(__name__)

SESSION_PATH = "/gwprocess/v4/api.php"
VALIDATION_PATH = "/validator/api/validationserverAPI.php"

DEFAULT_CUSTOMER_EMAIL = "customer@example.com"
DEFAULT_CUSTOMER_CITY = "Dhaka"
DEFAULT_CUSTOMER_COUNTRY = "Bangladesh"


def _amount(value: Decimal) -> str:
    return f"{Decimal(value).quantize(Decimal('0.01'))}"


def _multipart(fields: dict[str, str]) -> dict[str, tuple[None, str]]:
    # (None, value) parts are plain form fields, not file uploads
    return {name: (None, value) for name, value in fields.items()}


class SslcommerzGateway(PaymentGateway):
    provider_id = "sslcommerz"
    display_name = "SSLCOMMERZ"

    def __init__(
        self,
        settings: SslcommerzSettings,
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

    def session_fields(self, request: PaymentRequest) -> dict[str, str]:
        customer = request.customer
        return {
            "store_id": self.settings.store_id,
            "store_passwd": self.settings.store_password,
            "total_amount": _amount(request.amount),
            "currency": request.currency,
            "tran_id": request.order_id,
            "success_url": request.success_url,
            "fail_url": request.fail_url,
            "cancel_url": request.cancel_url,
            "cus_name": customer.name,
            "cus_email": customer.email or DEFAULT_CUSTOMER_EMAIL,
            "cus_phone": customer.phone,
            "cus_add1": customer.address,
            "cus_city": customer.city or DEFAULT_CUSTOMER_CITY,
            "cus_country": customer.country or DEFAULT_CUSTOMER_COUNTRY,
            "shipping_method": "NO",
            "product_name": "Order Payment",
            "product_category": "General",
            "product_profile": "general",
        }

    async def initiate(self, request: PaymentRequest) -> PaymentResponse:
        if (failure := self._not_enabled()) is not None:
            return failure

        url = f"{self.settings.resolved_base_url}{SESSION_PATH}"
        log = logger.bind(provider=self.provider_id, order_id=request.order_id)

        try:
            async with client_session(self.client, self.timeout) as client:
                response = await client.post(url, files=_multipart(self.session_fields(request)), timeout=self.timeout)
        except httpx.TimeoutException:
            log.error("SSLCOMMERZ session request timed out", timeout=self.timeout)
            return PaymentResponse.failed(
                GatewayErrorKind.TIMEOUT, "SSLCOMMERZ did not respond in time", self.provider_id
            )
        except httpx.HTTPError as exc:
            log.error("SSLCOMMERZ initialization error", error=str(exc))
            return PaymentResponse.failed(
                GatewayErrorKind.TRANSPORT, "Failed to initialize SSLCOMMERZ payment", self.provider_id
            )

        if not response.is_success:
            log.error("SSLCOMMERZ returned an HTTP error", status_code=response.status_code)
            return PaymentResponse.failed(
                GatewayErrorKind.TRANSPORT, "Failed to initialize SSLCOMMERZ payment", self.provider_id
            )

        result = json_body(response)
        if result.get("status") == "SUCCESS" and result.get("GatewayPageURL"):
            log.info("SSLCOMMERZ session created", session_key=result.get("sessionkey"))
            return PaymentResponse.redirect(result["GatewayPageURL"], result.get("sessionkey"))

        reason = result.get("failedreason") or "Payment initialization failed"
        log.warning("SSLCOMMERZ session rejected", status=result.get("status"), reason=reason)
        return PaymentResponse.failed(GatewayErrorKind.PROTOCOL, reason, self.provider_id)

    async def check_connection(self) -> bool:
        if self._not_enabled() is not None:
            return False

        url = f"{self.settings.resolved_base_url}{VALIDATION_PATH}"
        fields = {
            "store_id": self.settings.store_id,
            "store_passwd": self.settings.store_password,
            "val_id": "test",
        }
        try:
            async with client_session(self.client, self.timeout) as client:
                response = await client.post(url, files=_multipart(fields), timeout=self.timeout)
        except httpx.HTTPError as exc:
            logger.error("Error testing SSLCOMMERZ connection", error=str(exc))
            return False
        return response.is_success
