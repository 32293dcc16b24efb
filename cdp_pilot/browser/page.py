"""
CDP Pilot Page implementation.
"""
from __future__ import annotations

import asyncio
import base64
import logging
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Sequence, Set

import aiohttp

from cdp_pilot.core.connection import CDPConnection
from cdp_pilot.core.deadline import with_deadline
from cdp_pilot.core.exceptions import CDPProtocolError

from .dialog import Dialog
from .element import ElementHandle
from .evaluation import build_expression, unmarshal_result
from .events import EventEmitter
from .exceptions import CloseFailure, NavigationError, PageError, TransientUnavailable
from .input import Keyboard, Mouse, Touchscreen
from .waits import NavigationWait, NetworkIdleWait

if TYPE_CHECKING:
    from .browser import Browser

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0

# Body of a successful /json/close response
TARGET_CLOSING = "Target is closing"

_CONTENT_EXPRESSION = (
    '"<!DOCTYPE " + document.doctype.name'
    " + (document.doctype.publicId ? ' PUBLIC \"' + document.doctype.publicId + '\"' : '')"
    " + (!document.doctype.publicId && document.doctype.systemId ? ' SYSTEM' : '')"
    " + (document.doctype.systemId ? ' \"' + document.doctype.systemId + '\"' : '')"
    " + '>\\n' + document.documentElement.outerHTML"
)


class Page:
    """
    Manages a browser page/tab via CDP.

    Every operation that talks to the browser is bounded by ``timeout``
    seconds unless the call passes its own ``timeout``.

    Args:
        browser: The browser that opened or attached the page.
        target_id: The target ID of the page.
        url: The URL the page was showing when attached.
        connection: Protocol connection owned by this page.
        timeout: Default deadline in seconds.
    """

    def __init__(
        self,
        browser: "Browser",
        target_id: str,
        url: Optional[str],
        connection: CDPConnection,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.browser = browser
        self.target_id = target_id
        self.timeout = timeout
        self._url = url
        self._connection = connection
        self._closed = False
        self._events = EventEmitter()
        self._notifications: Set[asyncio.Task] = set()

        self.keyboard = Keyboard(connection)
        self.mouse = Mouse(connection, self.keyboard)
        self.touchscreen = Touchscreen(connection, self.keyboard)

        self._subscriptions = [
            connection.subscribe("Page.frameNavigated", self._on_frame_navigated),
            connection.subscribe("Page.javascriptDialogOpening", self._on_dialog_opening),
            connection.subscribe("Inspector.detached", self._on_detached),
        ]

    def __repr__(self) -> str:
        return f"<Page target_id={self.target_id!r} url={self._url!r}>"

    async def __aenter__(self) -> "Page":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    @property
    def url(self) -> Optional[str]:
        """The URL of the last navigation reported by the browser."""
        return self._url

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def connection(self) -> CDPConnection:
        """Raw protocol connection. Commands sent here bypass the deadline."""
        return self._connection

    def on(self, event_name: str, callback: Callable) -> None:
        """Register a page event listener (currently ``dialog``)."""
        self._events.on(event_name, callback)

    def once(self, event_name: str, callback: Callable) -> None:
        self._events.once(event_name, callback)

    def off(self, event_name: str, callback: Callable) -> None:
        self._events.off(event_name, callback)

    def _on_frame_navigated(self, params: Dict[str, Any]) -> None:
        frame = params.get("frame", {})
        self._url = frame.get("urlFragment", frame.get("url"))
        logger.debug(f"Page {self.target_id} navigated to {self._url}")

    def _on_dialog_opening(self, params: Dict[str, Any]) -> None:
        dialog = Dialog(self._connection, params, timeout=self.timeout)
        logger.debug(f"Page {self.target_id} opened {dialog!r}")
        # Runs outside the read loop, handlers answer the dialog over this connection
        self._notify("dialog", dialog)

    def _notify(self, event_name: str, *args: Any) -> None:
        task = asyncio.ensure_future(self._events.emit(event_name, *args))
        self._notifications.add(task)
        task.add_done_callback(self._notification_done)

    def _notification_done(self, task: asyncio.Task) -> None:
        self._notifications.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Page {self.target_id} notification failed: {task.exception()}")

    def _on_detached(self, params: Dict[str, Any]) -> None:
        logger.debug(f"Page {self.target_id} detached: {params.get('reason')}")
        self._detach()

    def _detach(self) -> None:
        self._closed = True
        for subscription in self._subscriptions:
            self._connection.unsubscribe(subscription)
        self._subscriptions.clear()
        self._events.clear()
        if self in self.browser.pages:
            self.browser.pages.remove(self)

    def _ensure_open(self) -> None:
        if self._closed:
            raise PageError(f"Page {self.target_id} is closed")

    def _deadline(self, timeout: Optional[float]) -> float:
        return self.timeout if timeout is None else timeout

    async def send_command(
        self,
        method: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        """
        Send a command to the page, bounded by the page deadline.

        Args:
            method: CDP method name.
            params: Optional parameters for the method.
            timeout: Deadline override in seconds.

        Returns:
            The result of the command.

        Raises:
            DeadlineExceeded: If no response arrived in time.
            CDPProtocolError: If the browser rejected the command.
        """
        self._ensure_open()
        return await with_deadline(
            self._connection.send_command(method, params), self._deadline(timeout)
        )

    async def initialize(self) -> None:
        """Enable the domains whose events the page relies on."""
        self._ensure_open()
        logger.debug(f"Initializing page {self.target_id}")
        await with_deadline(
            asyncio.gather(
                *(
                    self._connection.send_command(f"{domain}.enable")
                    for domain in ("Page", "Network", "DOM", "Runtime")
                )
            ),
            self.timeout,
        )

    async def _navigate(
        self,
        method: str,
        params: Dict[str, Any],
        wait_until: str,
        timeout: Optional[float],
    ) -> Dict[str, Any]:
        self._ensure_open()
        # Listen before sending so an early load event cannot be missed
        navigation = NavigationWait(self._connection, wait_until)

        async def command() -> Dict[str, Any]:
            result = await self._connection.send_command(method, params)
            if result.get("errorText"):
                raise NavigationError(f"{method} failed: {result['errorText']}")
            return result

        try:
            result, _ = await with_deadline(
                asyncio.gather(command(), navigation.wait()), self._deadline(timeout)
            )
        finally:
            navigation.cancel()
        return result

    async def goto(
        self,
        url: str,
        wait_until: str = "networkidle2",
        referrer: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        """
        Navigate to the URL and wait for the navigation to complete.

        Args:
            url: URL to navigate to.
            wait_until: ``load``, ``networkidle0`` or ``networkidle2``.
            referrer: Referrer header value.
            timeout: Deadline override in seconds.

        Raises:
            NavigationError: If the browser could not start the navigation.
            DeadlineExceeded: If the navigation did not complete in time.
        """
        params: Dict[str, Any] = {"url": url}
        if referrer is not None:
            params["referrer"] = referrer
        logger.debug(f"Navigating to {url} (wait_until={wait_until})")
        await self._navigate("Page.navigate", params, wait_until, timeout)

    async def reload(
        self, wait_until: str = "networkidle2", timeout: Optional[float] = None
    ) -> None:
        """Reload the page and wait for the navigation to complete."""
        logger.debug(f"Reloading page {self.target_id}")
        await self._navigate("Page.reload", {}, wait_until, timeout)

    async def wait_for_navigation(
        self, wait_until: str = "networkidle2", timeout: Optional[float] = None
    ) -> None:
        """
        Wait for the page to navigate or reload. Useful around actions that
        navigate indirectly, such as clicking a link.

        ``load`` waits for the next load event; ``networkidle0`` and
        ``networkidle2`` additionally wait, after that load event, for the
        network to stay at zero or at most two in-flight requests for half a
        second.
        """
        self._ensure_open()
        navigation = NavigationWait(self._connection, wait_until)
        try:
            await with_deadline(navigation.wait(), self._deadline(timeout))
        finally:
            navigation.cancel()

    async def wait_for_network_idle(
        self,
        idle_time: float = 0.5,
        idle_connections: int = 0,
        timeout: Optional[float] = None,
    ) -> None:
        """
        Wait until at most ``idle_connections`` requests have been in flight
        for ``idle_time`` seconds.

        Raises:
            DeadlineExceeded: If the network never settled in time.
        """
        self._ensure_open()
        idle = NetworkIdleWait(self._connection, idle_time, idle_connections)
        try:
            await with_deadline(idle.wait(), self._deadline(timeout))
        finally:
            idle.cancel()

    async def evaluate(
        self,
        page_function: str,
        args: Optional[Sequence[Any]] = None,
        force_expr: bool = False,
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Evaluate a JavaScript function or expression in the page.

        Function source is called with ``args`` serialized as JSON. Promises
        are awaited and the result is returned by value: ``undefined`` comes
        back as ``UNDEFINED``, ``null`` as None and BigInts as int.

        Example:
            ``await page.evaluate("(a, b) => a + b", args=[1, 2])``

        Raises:
            RemoteEvaluationError: If the script threw.
            TypeError: If an argument is not JSON serializable.
        """
        expression = build_expression(page_function, args, force_expr)
        response = await self.send_command(
            "Runtime.evaluate",
            {"expression": expression, "awaitPromise": True, "returnByValue": True},
            timeout=timeout,
        )
        return unmarshal_result(response)

    async def wait_for_function(
        self,
        page_function: str,
        args: Optional[Sequence[Any]] = None,
        poll_interval: float = 0,
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Evaluate ``page_function`` until it returns a truthy value, and
        return that value.

        Protocol errors, such as the execution context going away during a
        navigation, are retried. Exceptions thrown by the script are not.
        """

        async def poll() -> Any:
            while True:
                try:
                    result = await self.evaluate(page_function, args=args)
                except CDPProtocolError as e:
                    logger.debug(f"Evaluation not possible yet, retrying: {e}")
                else:
                    if result:
                        return result
                await asyncio.sleep(poll_interval)

        self._ensure_open()
        return await with_deadline(poll(), self._deadline(timeout))

    async def _fetch_root(self) -> Dict[str, Any]:
        result = await self._connection.send_command("DOM.getDocument", {"depth": 0})
        root = (result or {}).get("root")
        if not root:
            raise TransientUnavailable("Document root not available yet")
        return root

    async def _resolve_root(self) -> ElementHandle:
        while True:
            try:
                root = await self._fetch_root()
            except TransientUnavailable:
                await asyncio.sleep(0)
            else:
                return ElementHandle(root["nodeId"], self._connection, self)

    async def _get_root(self) -> ElementHandle:
        self._ensure_open()
        return await with_deadline(self._resolve_root(), self.timeout)

    async def query_selector(self, selector: str) -> Optional[ElementHandle]:
        """Run ``document.querySelector``; None if nothing matches."""
        root = await self._get_root()
        return await root.query_selector(selector)

    async def query_selector_all(self, selector: str) -> List[ElementHandle]:
        """Run ``document.querySelectorAll``."""
        root = await self._get_root()
        return await root.query_selector_all(selector)

    async def wait_for_selector(
        self, selector: str, timeout: Optional[float] = None
    ) -> ElementHandle:
        """
        Wait for ``selector`` to match an element of the document.

        The timeout covers resolving the document as well as the polling.

        Raises:
            DeadlineExceeded: If nothing matched in time.
        """

        async def find() -> ElementHandle:
            root = await self._resolve_root()
            return await root._poll_selector(selector)

        self._ensure_open()
        return await with_deadline(find(), self._deadline(timeout))

    async def content(self) -> str:
        """The full HTML of the page, including the doctype."""
        return await self.evaluate(_CONTENT_EXPRESSION, force_expr=True)

    async def cookies(self, *urls: str) -> List[Dict[str, Any]]:
        """Cookies for the given URLs, or for the current page if none given."""
        params = {"urls": list(urls)} if urls else {}
        result = await self.send_command("Network.getCookies", params)
        return result.get("cookies", [])

    async def delete_cookies(
        self,
        name: str,
        url: Optional[str] = None,
        domain: Optional[str] = None,
        path: Optional[str] = None,
    ) -> None:
        params = {"name": name, "url": url, "domain": domain, "path": path}
        await self.send_command(
            "Network.deleteCookies", {k: v for k, v in params.items() if v is not None}
        )

    async def emulate_cpu_throttling(self, rate: float) -> None:
        """Slow the CPU down by ``rate`` (1 disables throttling)."""
        await self.send_command("Emulation.setCPUThrottlingRate", {"rate": rate})

    async def screenshot(self, **options: Any) -> bytes:
        """Capture a screenshot. Options are ``Page.captureScreenshot`` params."""
        result = await self.send_command("Page.captureScreenshot", options)
        return base64.b64decode(result["data"])

    async def pdf(self, **options: Any) -> bytes:
        """Print the page to PDF. Options are ``Page.printToPDF`` params."""
        result = await self.send_command("Page.printToPDF", options)
        return base64.b64decode(result["data"])

    async def bring_to_front(self) -> None:
        await self.send_command("Page.bringToFront")

    async def wait_for_timeout(self, seconds: float) -> None:
        """Sleep. Prefer waiting for a condition."""
        await asyncio.sleep(seconds)

    async def _request_close(self, url: str) -> str:
        async with aiohttp.ClientSession() as session:
            async with session.get(url) as response:
                return await response.text()

    async def close(self) -> None:
        """
        Close the tab through the browser's HTTP endpoint.

        The protocol connection is closed whatever the browser answers,
        and also when the request fails or times out.

        Raises:
            CloseFailure: If the browser did not accept the request, e.g.
                because the page was already closed.
            DeadlineExceeded: If the browser did not answer in time.
        """
        url = f"{self.browser.base_url}/json/close/{self.target_id}"
        logger.debug(f"Closing page {self.target_id}")
        try:
            text = await with_deadline(self._request_close(url), self.timeout)
        except aiohttp.ClientError as e:
            await self._connection.close()
            raise PageError(f"Failed to close page: {e}") from e
        except Exception:
            await self._connection.close()
            raise

        if text == TARGET_CLOSING:
            self._detach()
            await self._connection.close()
            logger.debug(f"Page {self.target_id} closed")
            return

        await self._connection.close()
        raise CloseFailure(text)
