"""
CDP Pilot Browser implementation.
"""
import logging
from typing import Any, Dict, List

import aiohttp

from cdp_pilot.core.connection import CDPConnection
from cdp_pilot.core.deadline import with_deadline

from .exceptions import BrowserError
from .page import DEFAULT_TIMEOUT, Page

logger = logging.getLogger(__name__)


class Browser:
    """
    Attaches to a Chrome instance started with ``--remote-debugging-port``
    and hands out pages for its tabs. Each page gets its own protocol
    connection.

    Args:
        host: The hostname where Chrome is running.
        port: The port number for Chrome's remote debugging protocol.
        timeout: Default deadline in seconds given to every page.
    """

    def __init__(
        self, host: str = "localhost", port: int = 9222, timeout: float = DEFAULT_TIMEOUT
    ) -> None:
        """Initialize a new Browser instance."""
        self.host = host
        self.port = port
        self.timeout = timeout
        self.pages: List[Page] = []
        self.version: Dict[str, Any] = {}

    @property
    def base_url(self) -> str:
        """Base URL for DevTools HTTP endpoints."""
        return f"http://{self.host}:{self.port}"

    async def __aenter__(self) -> "Browser":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()

    async def _request(self, method: str, path: str) -> Any:
        url = f"{self.base_url}{path}"
        try:
            async with aiohttp.ClientSession() as session:
                async with session.request(method, url) as response:
                    if response.status != 200:
                        text = await response.text()
                        raise BrowserError(f"{method} {url} failed ({response.status}): {text}")
                    return await response.json(content_type=None)
        except aiohttp.ClientError as e:
            raise BrowserError(f"Failed to reach Chrome at {url}: {e}") from e

    async def connect(self) -> None:
        """Check that Chrome is reachable and read its version info."""
        self.version = await with_deadline(self._request("GET", "/json/version"), self.timeout)
        logger.info(f"Connected to {self.version.get('Browser', 'Chrome')} at {self.base_url}")

    async def new_page(self, url: str = "about:blank") -> Page:
        """Open a new tab and return its page."""
        logger.debug(f"Creating new page for {url}")
        target = await with_deadline(self._request("PUT", f"/json/new?{url}"), self.timeout)
        return await self._attach(target)

    async def attach_pages(self) -> List[Page]:
        """Attach to every open tab that has no page yet."""
        targets = await with_deadline(self._request("GET", "/json/list"), self.timeout)
        known = {page.target_id for page in self.pages}
        attached = []
        for target in targets:
            if target.get("type") == "page" and target["id"] not in known:
                attached.append(await self._attach(target))
        return attached

    async def _attach(self, target: Dict[str, Any]) -> Page:
        connection = CDPConnection(target["webSocketDebuggerUrl"])
        await connection.connect()

        page = Page(self, target["id"], target.get("url"), connection, timeout=self.timeout)
        self.pages.append(page)
        try:
            await page.initialize()
        except Exception:
            self.pages.remove(page)
            await connection.close()
            raise

        logger.debug(f"Attached to page {page.target_id}")
        return page

    async def disconnect(self) -> None:
        """Drop the connections of all pages. The tabs stay open."""
        for page in self.pages[:]:
            try:
                await page.connection.close()
            except Exception as e:
                logger.warning(f"Error disconnecting page {page.target_id}: {e}")
        self.pages.clear()
        logger.info("Browser disconnected")
