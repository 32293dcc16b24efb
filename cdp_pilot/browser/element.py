"""
DOM element handles.
"""
from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from cdp_pilot.core.connection import CDPConnection
from cdp_pilot.core.deadline import with_deadline

if TYPE_CHECKING:
    from .page import Page

logger = logging.getLogger(__name__)


class ElementHandle:
    """
    Handle to a DOM node of a page.

    Args:
        node_id: DOM node id.
        connection: Connection of the owning page.
        page: The owning page.
    """

    def __init__(self, node_id: int, connection: CDPConnection, page: "Page") -> None:
        self.node_id = node_id
        self._connection = connection
        self.page = page

    def __repr__(self) -> str:
        return f"<ElementHandle node_id={self.node_id}>"

    async def query_selector(self, selector: str) -> Optional[ElementHandle]:
        """Run ``querySelector`` under this node; None if nothing matches."""
        result = await self.page.send_command(
            "DOM.querySelector", {"nodeId": self.node_id, "selector": selector}
        )
        node_id = result.get("nodeId")
        if not node_id:
            return None
        return ElementHandle(node_id, self._connection, self.page)

    async def query_selector_all(self, selector: str) -> List[ElementHandle]:
        """Run ``querySelectorAll`` under this node."""
        result = await self.page.send_command(
            "DOM.querySelectorAll", {"nodeId": self.node_id, "selector": selector}
        )
        return [
            ElementHandle(node_id, self._connection, self.page)
            for node_id in result.get("nodeIds", [])
        ]

    async def wait_for_selector(
        self, selector: str, timeout: Optional[float] = None
    ) -> ElementHandle:
        """
        Wait until ``selector`` matches under this node.

        Raises:
            DeadlineExceeded: If nothing matched within the timeout.
        """

        if timeout is None:
            timeout = self.page.timeout
        return await with_deadline(self._poll_selector(selector), timeout)

    async def _poll_selector(self, selector: str) -> ElementHandle:
        while True:
            element = await self.query_selector(selector)
            if element is not None:
                return element
            await asyncio.sleep(0)

    async def outer_html(self) -> str:
        result = await self.page.send_command(
            "DOM.getOuterHTML", {"nodeId": self.node_id}
        )
        return result.get("outerHTML", "")

    async def box_model(self) -> Dict[str, Any]:
        result = await self.page.send_command(
            "DOM.getBoxModel", {"nodeId": self.node_id}
        )
        return result.get("model", {})

    async def _center(self) -> Tuple[float, float]:
        content = (await self.box_model())["content"]
        # Quad corners: top-left is (0, 1), bottom-right is (4, 5)
        x = (content[0] + content[4]) / 2
        y = (content[1] + content[5]) / 2
        return x, y

    async def click(self, button: str = "left", click_count: int = 1) -> None:
        """Click the center of the element."""
        await self.page.send_command("DOM.scrollIntoViewIfNeeded", {"nodeId": self.node_id})
        x, y = await self._center()
        logger.debug(f"Clicking node {self.node_id} at ({x}, {y})")
        await self.page.mouse.click(x, y, button=button, click_count=click_count)
