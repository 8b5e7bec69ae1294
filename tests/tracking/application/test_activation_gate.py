"""Tests for the lazy activation gate."""

import asyncio

import pytest
from tracking.activation import ActivationState, LazyActivationGate
from tracking.destination.fake_adapter import FakeDestination
from tracking.destination.port import DestinationRole


class _SlowDestination(FakeDestination):
    """Initialization yields to the loop so racing triggers overlap it."""

    async def initialize(self) -> bool:
        self.initialize_calls += 1
        await asyncio.sleep(0.01)
        return True


class _BrokenDestination(FakeDestination):
    async def initialize(self) -> bool:
        self.initialize_calls += 1
        raise RuntimeError("script blocked")


class TestTriggers:
    def test_gate_starts_idle(self, gate):
        assert gate.state is ActivationState.IDLE
        assert not gate.is_ready()

    @pytest.mark.asyncio
    async def test_interaction_starts_initialization(self, gate, analytics):
        task = gate.notify_interaction("scroll")

        assert gate.state is ActivationState.INITIALIZING
        await task
        assert gate.is_ready()
        assert analytics.initialize_calls == 1

    @pytest.mark.asyncio
    async def test_unknown_signal_is_ignored(self, gate):
        assert gate.notify_interaction("mousemove-ish") is None
        assert gate.state is ActivationState.IDLE

    @pytest.mark.asyncio
    async def test_interaction_after_ready_is_a_no_op(self, gate, analytics):
        await gate.ensure_ready()

        assert gate.notify_interaction("key") is None
        assert analytics.initialize_calls == 1

    @pytest.mark.asyncio
    async def test_fallback_timeout_activates(self, destinations, analytics):
        gate = LazyActivationGate(destinations, timeout=0.01)
        gate.arm()

        await asyncio.sleep(0.05)

        assert gate.state is not ActivationState.IDLE
        await gate.ensure_ready()
        assert gate.is_ready()
        assert gate.init_runs == 1
        assert analytics.initialize_calls == 1

    @pytest.mark.asyncio
    async def test_interaction_cancels_pending_timeout(self, destinations):
        gate = LazyActivationGate(destinations, timeout=0.01)
        gate.arm()

        await gate.notify_interaction("touch")
        await asyncio.sleep(0.03)

        assert gate.init_runs == 1


class TestExactlyOnce:
    @pytest.mark.asyncio
    async def test_concurrent_triggers_initialize_once(self):
        slow = _SlowDestination(DestinationRole.PIXEL)
        gate = LazyActivationGate([slow], timeout=0.005)
        gate.arm()

        interaction = gate.notify_interaction("pointer")
        await asyncio.gather(
            gate.ensure_ready(),
            gate.ensure_ready(),
            interaction,
            asyncio.sleep(0.02),
        )
        gate.notify_interaction("key")

        assert gate.is_ready()
        assert gate.init_runs == 1
        assert slow.initialize_calls == 1

    @pytest.mark.asyncio
    async def test_ensure_ready_waits_for_in_flight_run(self):
        slow = _SlowDestination(DestinationRole.ANALYTICS_LAYER)
        gate = LazyActivationGate([slow])

        gate.notify_interaction("pointer")
        assert gate.state is ActivationState.INITIALIZING

        await gate.ensure_ready()

        assert gate.is_ready()
        assert slow.initialize_calls == 1

    @pytest.mark.asyncio
    async def test_failed_destination_still_leaves_gate_ready(self, analytics):
        broken = _BrokenDestination(DestinationRole.PIXEL)
        gate = LazyActivationGate([analytics, broken])

        await gate.ensure_ready()

        assert gate.is_ready()
        assert broken.initialize_calls == 1
        assert analytics.initialize_calls == 1

        await gate.ensure_ready()
        assert gate.init_runs == 1
