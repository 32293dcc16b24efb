"""
Local event emitter used by pages to publish notifications such as dialogs.
"""
import inspect
import logging
from typing import Callable, Dict, List

logger = logging.getLogger(__name__)


class EventEmitter:
    """A simple event emitter class."""

    def __init__(self):
        """Initialize the event emitter."""
        self._listeners: Dict[str, List[Callable]] = {}
        self._one_time_listeners: Dict[str, List[Callable]] = {}

    def on(self, event_name: str, callback: Callable) -> None:
        """Add a persistent event listener."""
        self._listeners.setdefault(event_name, []).append(callback)

    def once(self, event_name: str, callback: Callable) -> None:
        """Add a one-time event listener."""
        self._one_time_listeners.setdefault(event_name, []).append(callback)

    def off(self, event_name: str, callback: Callable) -> None:
        """Remove a listener added with ``on`` or ``once``."""
        for registry in (self._listeners, self._one_time_listeners):
            listeners = registry.get(event_name, [])
            if callback in listeners:
                listeners.remove(callback)
            if not listeners:
                registry.pop(event_name, None)

    async def emit(self, event_name: str, *args, **kwargs) -> None:
        """Emit an event with arguments."""
        # Copy, listeners may remove themselves
        callbacks = list(self._listeners.get(event_name, []))
        callbacks.extend(self._one_time_listeners.pop(event_name, []))

        for callback in callbacks:
            try:
                result = callback(*args, **kwargs)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Error in event listener for {event_name}: {e}")

    def clear(self) -> None:
        """Clear all event listeners."""
        self._listeners.clear()
        self._one_time_listeners.clear()
