"""
Connection module for CDP Pilot.
Handles WebSocket connections to Chrome DevTools Protocol.
"""
import asyncio
import inspect
import json
import logging
from typing import Any, Callable, Dict, List, NamedTuple, Optional

import websockets
from websockets.exceptions import ConnectionClosed

from cdp_pilot.core.exceptions import CDPConnectionError, CDPError
from cdp_pilot.core.protocol import CDPProtocol

logger = logging.getLogger(__name__)

EventHandler = Callable[[Dict[str, Any]], Any]


class Subscription(NamedTuple):
    """Handle returned by ``CDPConnection.subscribe``."""

    event: str
    handler: EventHandler


class CDPConnection:
    """
    Manages a WebSocket connection to Chrome DevTools Protocol.

    Commands are correlated with their responses by id. Events are handed to
    subscribers in the order they arrive on the socket.
    """

    def __init__(self, ws_url: str):
        """
        Initialize a CDP connection.

        Args:
            ws_url: WebSocket URL for CDP
        """
        self.ws_url = CDPProtocol.parse_ws_url(ws_url)
        self.ws = None
        self.connected = False
        self._closing = False
        self.message_id = 0
        self.callbacks: Dict[int, asyncio.Future] = {}
        self._event_listeners: Dict[str, List[EventHandler]] = {}
        self._listener_task: Optional[asyncio.Task] = None

    async def connect(self) -> None:
        """
        Connect to Chrome DevTools Protocol.
        """
        if self.connected:
            return

        try:
            self.ws = await websockets.connect(self.ws_url, max_size=None)
            self.connected = True
            self._closing = False

            # Start listening for messages
            self._listener_task = asyncio.create_task(self._listen_for_messages())
            logger.debug(f"Connected to {self.ws_url}")

        except Exception as e:
            self.ws = None
            self.connected = False
            raise CDPConnectionError(f"Failed to connect to CDP: {str(e)}")

    async def close(self) -> None:
        """
        Close the connection. Pending commands fail with CDPConnectionError.
        """
        if not self.connected:
            return

        self._closing = True

        try:
            if self.ws:
                await self.ws.close()
        except Exception as e:
            logger.warning(f"Error closing WebSocket: {str(e)}")
        finally:
            self.ws = None
            self.connected = False
            self._fail_pending(CDPConnectionError("Connection closed"))

        if self._listener_task and not self._listener_task.done():
            self._listener_task.cancel()
        self._listener_task = None
        logger.debug(f"Disconnected from {self.ws_url}")

    def _fail_pending(self, error: CDPError) -> None:
        for future in self.callbacks.values():
            if not future.done():
                future.set_exception(error)
        self.callbacks.clear()

    async def _listen_for_messages(self) -> None:
        """
        Listen for messages from CDP and handle them.
        """
        if not self.ws:
            return

        try:
            async for message in self.ws:
                try:
                    await self._process_message(json.loads(message))
                except json.JSONDecodeError as e:
                    logger.error(f"Failed to decode message: {str(e)}")

        except ConnectionClosed:
            if not self._closing:
                logger.warning("WebSocket connection closed unexpectedly")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if not self._closing:
                logger.error(f"Error in message listener: {str(e)}")
        finally:
            if not self._closing:
                self.connected = False
                self._fail_pending(CDPConnectionError("Connection lost"))

    async def _process_message(self, data: Dict[str, Any]) -> None:
        """
        Route a decoded message to its waiting command or to event subscribers.

        Args:
            data: Decoded CDP message
        """
        message_id = data.get("id")
        if message_id is not None:
            future = self.callbacks.pop(message_id, None)
            if future is None or future.done():
                return
            try:
                future.set_result(CDPProtocol.parse_response(data))
            except CDPError as e:
                future.set_exception(e)

        elif "method" in data:
            await self.dispatch(data["method"], data.get("params", {}))

    async def dispatch(self, event: str, params: Dict[str, Any]) -> None:
        """
        Deliver an event to its subscribers.

        Args:
            event: CDP event name
            params: Event parameters
        """
        # Copy, handlers may unsubscribe while running
        for handler in list(self._event_listeners.get(event, ())):
            try:
                result = handler(params)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Error in event listener for {event}: {str(e)}")

    async def send_command(
        self, method: str, params: Optional[Dict[str, Any]] = None
    ) -> Any:
        """
        Send a command to Chrome DevTools Protocol.

        Args:
            method: CDP method name
            params: CDP method parameters

        Returns:
            Response from CDP

        Raises:
            CDPProtocolError: If CDP answered with an error
            CDPConnectionError: If the command could not be delivered
        """
        if not self.ws or not self.connected:
            raise CDPConnectionError("Not connected to CDP")

        if self._closing:
            raise CDPConnectionError("Connection is closing")

        self.message_id += 1
        message_id = self.message_id

        message = CDPProtocol.format_command(message_id, method, params)
        future = asyncio.get_running_loop().create_future()
        self.callbacks[message_id] = future

        try:
            await self.ws.send(json.dumps(message))
            logger.debug(f"Sent {method} (id={message_id})")
        except Exception as e:
            self.callbacks.pop(message_id, None)
            raise CDPConnectionError(f"Error in CDP command {method}: {str(e)}")

        try:
            return await future
        finally:
            self.callbacks.pop(message_id, None)

    def subscribe(self, event: str, handler: EventHandler) -> Subscription:
        """
        Add an event listener for CDP events.

        Args:
            event: CDP event name (e.g. Page.loadEventFired)
            handler: Plain or async callable receiving the event params

        Returns:
            Handle to pass to ``unsubscribe``
        """
        self._event_listeners.setdefault(event, []).append(handler)
        return Subscription(event, handler)

    def unsubscribe(self, subscription: Subscription) -> None:
        """
        Remove an event listener. Unknown handles are ignored.

        Args:
            subscription: Handle returned by ``subscribe``
        """
        listeners = self._event_listeners.get(subscription.event)
        if not listeners:
            return
        try:
            listeners.remove(subscription.handler)
        except ValueError:
            return
        if not listeners:
            del self._event_listeners[subscription.event]

    def listener_count(self, event: Optional[str] = None) -> int:
        """
        Count registered listeners, for one event or for all of them.
        """
        if event is not None:
            return len(self._event_listeners.get(event, ()))
        return sum(len(listeners) for listeners in self._event_listeners.values())
