"""Server-side Conversions API destination.

Posts one event per request to the ads platform's events endpoint::

    POST https://graph.facebook.com/v{version}/{pixel_id}/events
    {"data": [<event payload>], "access_token": "..."}

Identity fields are hashed before they are put on the wire. Any non-2xx
answer, transport error, or a body whose ``events_received`` is not 1 is a
soft failure: logged, not retried, and reported as False.
"""

from typing import Any

import httpx
import structlog

from tracking.destination.pixel import build_pixel_params, pixel_event_name
from tracking.destination.port import DestinationRole, TrackingDestination
from tracking.event.hashing import hash_user
from tracking.event.model import EventKind, TrackingEvent

logger = structlog.get_logger(__name__)

GRAPH_API_URL = "https://graph.facebook.com"


class ConversionsApiDestination(TrackingDestination):
    role = DestinationRole.CONVERSIONS_API
    name = "conversions_api"

    def __init__(
        self,
        pixel_id: str | None,
        access_token: str | None,
        api_version: str = "18.0",
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
        base_url: str = GRAPH_API_URL,
    ) -> None:
        self.pixel_id = pixel_id
        self.access_token = access_token
        self.api_version = api_version.lstrip("v")
        self.client = client
        self.timeout = timeout
        self.base_url = base_url.rstrip("/")

    @property
    def is_configured(self) -> bool:
        return bool(self.pixel_id and self.access_token)

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/v{self.api_version}/{self.pixel_id}/events"

    def build_payload(self, event: TrackingEvent) -> dict[str, Any] | None:
        if event.kind is EventKind.CUSTOM:
            event_name = event.name
        else:
            event_name = pixel_event_name(event.kind)
        if not event_name:
            return None

        payload: dict[str, Any] = {
            "event_name": event_name,
            "event_time": event.occurred_at,
            "event_id": event.event_id,
            "user_data": hash_user(event.user),
            "action_source": "website",
        }

        custom_data = build_pixel_params(event)
        if event.kind is EventKind.PURCHASE and "order_id" in custom_data:
            custom_data["status"] = custom_data.pop("order_id")
        payload["custom_data"] = custom_data

        if event.source_url:
            payload["event_source_url"] = event.source_url
        if event.extra.get("client_user_agent"):
            payload["user_data"]["client_user_agent"] = event.extra["client_user_agent"]
        return payload

    async def send(self, event: TrackingEvent) -> bool:
        if not self.is_configured:
            logger.warning("Conversions API not configured, skipping event", kind=event.kind.value)
            return False

        payload = self.build_payload(event)
        if payload is None:
            return False

        body = {"data": [payload], "access_token": self.access_token}
        log = logger.bind(event_name=payload["event_name"], event_id=event.event_id)

        try:
            if self.client is not None:
                response = await self.client.post(self.endpoint, json=body, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.endpoint, json=body)
        except httpx.HTTPError as exc:
            log.error("Conversions API request failed", error=str(exc))
            return False

        if not response.is_success:
            log.error("Conversions API error", status_code=response.status_code, body=response.text[:500])
            return False

        try:
            result = response.json()
        except ValueError:
            log.error("Conversions API returned a non-JSON body", status_code=response.status_code)
            return False

        if not isinstance(result, dict) or result.get("events_received") != 1:
            log.warning("Conversions API did not acknowledge the event", result=result)
            return False

        log.info("Conversions API event sent")
        return True
