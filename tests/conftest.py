import asyncio
import inspect
from typing import Any, Dict, List, Optional, Tuple

import pytest

from cdp_pilot.browser.browser import Browser
from cdp_pilot.browser.page import Page
from cdp_pilot.core.connection import CDPConnection


class FakeConnection(CDPConnection):
    """
    Protocol connection without a socket. Commands are answered by
    per-method responders, events are injected with ``emit``.
    """

    def __init__(self):
        super().__init__("ws://fake/devtools/page/target-1")
        self.connected = True
        self.closed = False
        self.sent: List[Tuple[str, Optional[Dict[str, Any]]]] = []
        self.responders: Dict[str, Any] = {}

    def respond(self, method: str, responder: Any) -> None:
        """Answer ``method`` with a value, or with ``responder(params)`` if callable."""
        self.responders[method] = responder

    def methods(self) -> List[str]:
        return [method for method, _ in self.sent]

    async def connect(self) -> None:
        self.connected = True

    async def close(self) -> None:
        self.connected = False
        self.closed = True

    async def send_command(self, method: str, params: Optional[Dict[str, Any]] = None) -> Any:
        self.sent.append((method, params))
        # Let other tasks run, as a real round trip would
        await asyncio.sleep(0)
        responder = self.responders.get(method, {})
        result = responder(params) if callable(responder) else responder
        if inspect.isawaitable(result):
            result = await result
        return result

    async def emit(self, event: str, params: Optional[Dict[str, Any]] = None) -> None:
        await self.dispatch(event, params or {})

    def emit_later(self, delay: float, event: str, params: Optional[Dict[str, Any]] = None):
        loop = asyncio.get_running_loop()
        return loop.call_later(delay, lambda: loop.create_task(self.emit(event, params)))


@pytest.fixture
def connection() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def browser() -> Browser:
    return Browser("127.0.0.1", 9, timeout=1.0)


@pytest.fixture
def page(browser: Browser, connection: FakeConnection) -> Page:
    page = Page(browser, "target-1", "about:blank", connection, timeout=1.0)
    browser.pages.append(page)
    return page

