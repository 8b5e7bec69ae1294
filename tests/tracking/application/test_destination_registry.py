"""Tests for the destination registry."""

import pytest
from shared.config import TrackingConfig
from tracking.destination import get_destination, get_destinations, reset_destinations, set_destination
from tracking.destination.conversions_api import ConversionsApiDestination
from tracking.destination.data_layer import DataLayerDestination
from tracking.destination.fake_adapter import FakeDestination
from tracking.destination.pixel import PixelDestination
from tracking.destination.port import DestinationRole

CONFIG = TrackingConfig(pixel_id="PIXEL123", access_token="token", api_version="19.0", container_id="GTM-1")


class TestDestinationRegistry:
    def test_builds_one_adapter_per_role(self):
        destinations = get_destinations(CONFIG)

        assert [type(d) for d in destinations] == [DataLayerDestination, PixelDestination, ConversionsApiDestination]

    def test_adapters_are_configured(self):
        capi = get_destination(DestinationRole.CONVERSIONS_API, CONFIG)

        assert capi.is_configured
        assert capi.endpoint == "https://graph.facebook.com/v19.0/PIXEL123/events"
        assert get_destination(DestinationRole.ANALYTICS_LAYER, CONFIG).container_id == "GTM-1"

    def test_adapters_are_singletons(self):
        assert get_destination(DestinationRole.PIXEL, CONFIG) is get_destination(DestinationRole.PIXEL, CONFIG)

    def test_set_destination_overrides_role(self):
        fake = FakeDestination(DestinationRole.PIXEL)
        set_destination(fake)

        assert get_destination(DestinationRole.PIXEL, CONFIG) is fake

    def test_reset_destinations(self):
        set_destination(FakeDestination(DestinationRole.PIXEL))
        reset_destinations()

        assert isinstance(get_destination(DestinationRole.PIXEL, CONFIG), PixelDestination)

    @pytest.mark.asyncio
    async def test_pixel_loader_reaches_the_pixel_destination(self):
        calls = []
        pixel = get_destination(DestinationRole.PIXEL, CONFIG, pixel_loader=lambda: lambda *args: calls.append(args))

        assert await pixel.initialize() is True
        assert calls == [("init", "PIXEL123"), ("track", "PageView")]

    def test_get_destinations_passes_pixel_loader(self):
        loader = lambda: None  # noqa: E731
        destinations = get_destinations(CONFIG, pixel_loader=loader)

        assert destinations[1].loader is loader


class TestTrackingConfig:
    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("FB_PIXEL_ID", "PX")
        monkeypatch.setenv("FB_ACCESS_TOKEN", "tok")
        monkeypatch.setenv("TRACKING_DEFAULT_CURRENCY", "bdt")
        monkeypatch.setenv("TRACKING_ACTIVATION_TIMEOUT", "2.5")

        config = TrackingConfig.from_env()

        assert config.conversions_api_configured
        assert config.default_currency == "BDT"
        assert config.activation_timeout == 2.5

    def test_conversions_api_needs_both_credentials(self):
        assert not TrackingConfig(pixel_id="PX").conversions_api_configured
