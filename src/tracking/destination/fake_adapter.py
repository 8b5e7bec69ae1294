"""Fake tracking destination — records events in memory for test assertions."""

from tracking.destination.port import DestinationRole, TrackingDestination
from tracking.event.model import TrackingEvent


class FakeDestination(TrackingDestination):
    """Destination double that can be told to fail or to raise."""

    def __init__(self, role: DestinationRole, name: str | None = None) -> None:
        self.role = role
        self.name = name or f"fake_{role.value}"
        self.sent_events: list[TrackingEvent] = []
        self.initialize_calls = 0
        self.should_succeed = True
        self.should_raise: Exception | None = None

    def configure(self, should_succeed: bool = True, should_raise: Exception | None = None) -> None:
        self.should_succeed = should_succeed
        self.should_raise = should_raise

    async def initialize(self) -> bool:
        self.initialize_calls += 1
        return True

    async def send(self, event: TrackingEvent) -> bool:
        if self.should_raise is not None:
            raise self.should_raise
        self.sent_events.append(event)
        return self.should_succeed

    def reset(self) -> None:
        self.sent_events.clear()
        self.initialize_calls = 0
        self.should_succeed = True
        self.should_raise = None
