"""Lazy activation gate for tracking destinations.

Third-party tracking is kept off the critical path until it is needed:

    IDLE → INITIALIZING → READY

The first of these moves the gate out of IDLE:

- a user interaction signal (pointer, key, scroll, touch),
- the fallback timeout armed with ``arm()`` (10 seconds by default),
- ``ensure_ready()``, called before revenue events (add-to-cart,
  begin-checkout, purchase) so they never go out untracked.

The initialization body runs exactly once however many triggers fire;
later triggers attach to the in-flight run or see READY. READY is terminal.
"""

import asyncio
from collections.abc import Iterable
from enum import Enum

import structlog

from tracking.destination.port import TrackingDestination

logger = structlog.get_logger(__name__)

INTERACTION_SIGNALS = frozenset({"pointer", "key", "scroll", "touch"})
DEFAULT_ACTIVATION_TIMEOUT = 10.0


class ActivationState(Enum):
    IDLE = "Idle"
    INITIALIZING = "Initializing"
    READY = "Ready"


class LazyActivationGate:
    def __init__(
        self,
        destinations: Iterable[TrackingDestination] = (),
        timeout: float = DEFAULT_ACTIVATION_TIMEOUT,
    ) -> None:
        self.destinations = list(destinations)
        self.timeout = timeout
        self.state = ActivationState.IDLE
        self.init_runs = 0
        self._task: asyncio.Task | None = None
        self._timer: asyncio.TimerHandle | None = None

    def is_ready(self) -> bool:
        return self.state is ActivationState.READY

    # -------------------------------------------------------------------
    # Triggers
    # -------------------------------------------------------------------
    def arm(self) -> None:
        """Schedule the fallback activation; must be called from a running loop."""
        if self.state is not ActivationState.IDLE or self._timer is not None:
            return
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.timeout, self._on_timeout)
        logger.debug("Tracking activation armed", timeout=self.timeout)

    def notify_interaction(self, signal: str) -> asyncio.Task | None:
        """Record a user interaction; the first recognised one starts initialization."""
        if signal not in INTERACTION_SIGNALS:
            return None
        if self.state is not ActivationState.IDLE:
            return None
        logger.debug("Tracking activation triggered by interaction", signal=signal)
        return self._start()

    async def ensure_ready(self) -> None:
        """Force activation and wait until it has finished."""
        if self.state is ActivationState.READY:
            return
        task = self._start() if self.state is ActivationState.IDLE else self._task
        if task is not None:
            # Shielded so a cancelled caller cannot abort the shared run
            await asyncio.shield(task)

    def _on_timeout(self) -> None:
        self._timer = None
        if self.state is ActivationState.IDLE:
            logger.info("Tracking activation triggered by fallback timeout")
            self._start()

    # -------------------------------------------------------------------
    # Initialization
    # -------------------------------------------------------------------
    def _start(self) -> asyncio.Task:
        # State flips before any await, so racing triggers see INITIALIZING
        self.state = ActivationState.INITIALIZING
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._task = asyncio.get_running_loop().create_task(self._initialize())
        return self._task

    async def _initialize(self) -> None:
        self.init_runs += 1
        results = await asyncio.gather(
            *(destination.initialize() for destination in self.destinations),
            return_exceptions=True,
        )
        for destination, result in zip(self.destinations, results, strict=True):
            if isinstance(result, BaseException):
                logger.error(
                    "Tracking destination failed to initialize",
                    destination=destination.name,
                    error=str(result),
                )
            elif not result:
                logger.info("Tracking destination not activated", destination=destination.name)
        self.state = ActivationState.READY
        logger.info("Tracking initialized", destinations=[d.name for d in self.destinations])
