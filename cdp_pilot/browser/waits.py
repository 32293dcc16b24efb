"""
Pending waits for CDP Pilot pages.

Each wait is an object that owns the event subscriptions and the timer it
creates. The first outcome (settle, fail or cancel) releases all of them, so
no listener or timer outlives the wait whichever way it ends.
"""
import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

from cdp_pilot.core.connection import CDPConnection, Subscription

logger = logging.getLogger(__name__)

NAVIGATION_IDLE_TIME = 0.5

# wait_until criterion -> idle connection threshold applied after load
NAVIGATION_CRITERIA: Dict[str, Optional[int]] = {
    "load": None,
    "networkidle0": 0,
    "networkidle2": 2,
}


class PendingWait:
    """
    A single-fire wait bound to one connection.

    Args:
        connection: Connection the wait subscribes to.
    """

    def __init__(self, connection: CDPConnection) -> None:
        self._connection = connection
        self._loop = asyncio.get_running_loop()
        self._future: asyncio.Future = self._loop.create_future()
        self._subscriptions: List[Subscription] = []
        self._timer: Optional[asyncio.TimerHandle] = None
        self._finished = False

    @property
    def done(self) -> bool:
        return self._finished

    def _subscribe(self, event: str, handler: Callable[[Dict[str, Any]], None]) -> None:
        self._subscriptions.append(self._connection.subscribe(event, handler))

    def _arm_timer(self, delay: float, callback: Callable[[], Any]) -> None:
        self._disarm_timer()
        self._timer = self._loop.call_later(delay, callback)

    def _disarm_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _release(self) -> bool:
        if self._finished:
            return False
        self._finished = True
        self._disarm_timer()
        for subscription in self._subscriptions:
            self._connection.unsubscribe(subscription)
        self._subscriptions.clear()
        return True

    def settle(self, result: Any = None) -> bool:
        """Resolve the wait. Returns False if it had already finished."""
        if not self._release():
            return False
        if not self._future.done():
            self._future.set_result(result)
        return True

    def fail(self, error: BaseException) -> bool:
        """Fail the wait. Returns False if it had already finished."""
        if not self._release():
            return False
        if not self._future.done():
            self._future.set_exception(error)
        return True

    def cancel(self) -> bool:
        """Abandon the wait. Returns False if it had already finished."""
        if not self._release():
            return False
        self._future.cancel()
        return True

    async def wait(self) -> Any:
        """Wait for the outcome, releasing resources on every exit path."""
        try:
            return await self._future
        finally:
            self.cancel()


class LoadWait(PendingWait):
    """One-shot wait for the next ``Page.loadEventFired``."""

    def __init__(self, connection: CDPConnection) -> None:
        super().__init__(connection)
        self._subscribe("Page.loadEventFired", self._on_load)

    def _on_load(self, params: Dict[str, Any]) -> None:
        if self.settle():
            logger.debug("Load event fired")


class NetworkIdleWait(PendingWait):
    """
    Resolves once no more than ``idle_connections`` requests have been in
    flight for ``idle_time`` seconds without interruption.

    The timer is armed while the in-flight count is at or below the
    threshold and disarmed as soon as a request pushes it above.

    Args:
        connection: Connection delivering Network domain events.
        idle_time: Quiet period in seconds.
        idle_connections: Maximum in-flight requests still counted as idle.
    """

    def __init__(
        self,
        connection: CDPConnection,
        idle_time: float = 0.5,
        idle_connections: int = 0,
    ) -> None:
        super().__init__(connection)
        self.idle_time = idle_time
        self.idle_connections = idle_connections
        self.inflight = 0

        self._subscribe("Network.requestWillBeSent", self._on_request_started)
        self._subscribe("Network.loadingFinished", self._on_request_finished)
        self._subscribe("Network.loadingFailed", self._on_request_finished)
        self._arm_timer(idle_time, self._on_idle)

    @property
    def armed(self) -> bool:
        return self._timer is not None

    def _on_idle(self) -> None:
        self._timer = None
        if self.settle():
            logger.debug(f"Network idle for {self.idle_time}s")

    def _on_request_started(self, params: Dict[str, Any]) -> None:
        if self.done:
            return
        self.inflight += 1
        if self.inflight > self.idle_connections:
            self._disarm_timer()

    def _on_request_finished(self, params: Dict[str, Any]) -> None:
        if self.done or self.inflight == 0:
            return
        self.inflight -= 1
        if self.inflight == self.idle_connections:
            self._arm_timer(self.idle_time, self._on_idle)


class NavigationWait:
    """
    Two-phase navigation wait: the load event, then network quiescence.

    The load listener is registered on construction, so the wait can be
    created before the command that triggers the navigation is sent.

    Args:
        connection: Connection of the navigating page.
        wait_until: One of ``load``, ``networkidle0``, ``networkidle2``.
    """

    def __init__(self, connection: CDPConnection, wait_until: str = "networkidle2") -> None:
        if wait_until not in NAVIGATION_CRITERIA:
            raise ValueError(
                f"Unknown wait_until value {wait_until!r}, expected one of "
                f"{', '.join(NAVIGATION_CRITERIA)}"
            )
        self._connection = connection
        self.wait_until = wait_until
        self._load = LoadWait(connection)
        self._idle: Optional[NetworkIdleWait] = None
        self._cancelled = False

    async def wait(self) -> None:
        try:
            await self._load.wait()
            threshold = NAVIGATION_CRITERIA[self.wait_until]
            if threshold is None or self._cancelled:
                return
            self._idle = NetworkIdleWait(
                self._connection,
                idle_time=NAVIGATION_IDLE_TIME,
                idle_connections=threshold,
            )
            await self._idle.wait()
            logger.debug(f"Navigation complete ({self.wait_until})")
        finally:
            self.cancel()

    def cancel(self) -> None:
        self._cancelled = True
        self._load.cancel()
        if self._idle is not None:
            self._idle.cancel()
