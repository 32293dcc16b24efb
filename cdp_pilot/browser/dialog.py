"""
JavaScript dialogs (alert, confirm, prompt, beforeunload).
"""
import logging
from typing import Any, Dict, Optional

from cdp_pilot.core.connection import CDPConnection
from cdp_pilot.core.deadline import with_deadline

logger = logging.getLogger(__name__)


class Dialog:
    """
    A dialog opened by the page. Handlers must accept or dismiss it, the
    page stays blocked until they do.

    Args:
        connection: Connection of the page that opened the dialog.
        params: ``Page.javascriptDialogOpening`` event parameters.
        timeout: Deadline in seconds for answering the dialog.
    """

    def __init__(
        self,
        connection: CDPConnection,
        params: Dict[str, Any],
        timeout: Optional[float] = None,
    ) -> None:
        self._connection = connection
        self.timeout = timeout
        self.message: str = params.get("message", "")
        self.type: str = params.get("type", "alert")
        self.url: str = params.get("url", "")
        self.default_value: str = params.get("defaultPrompt", "")
        self.handled = False

    async def accept(self, prompt_text: Optional[str] = None) -> None:
        params: Dict[str, Any] = {"accept": True}
        if prompt_text is not None:
            params["promptText"] = prompt_text
        await self._handle(params)

    async def dismiss(self) -> None:
        await self._handle({"accept": False})

    async def _handle(self, params: Dict[str, Any]) -> None:
        if self.handled:
            raise RuntimeError("Dialog has already been handled")
        self.handled = True
        logger.debug(f"Handling {self.type} dialog: {params}")
        await with_deadline(
            self._connection.send_command("Page.handleJavaScriptDialog", params),
            self.timeout,
        )

    def __repr__(self) -> str:
        return f"<Dialog type={self.type!r} message={self.message!r}>"
