"""
Input module for CDP Pilot.
Emits mouse, keyboard and touch events through the Input domain.
"""
import asyncio
import logging
from typing import Dict, Optional, Union

from cdp_pilot.core.connection import CDPConnection

logger = logging.getLogger(__name__)

# Modifier bit masks used by the Input domain
MODIFIERS = {"Alt": 1, "Control": 2, "Meta": 4, "Shift": 8}

# Map of special keys to their key codes and codes
KEY_DEFINITIONS: Dict[str, Dict[str, Union[int, str]]] = {
    "Enter": {"keyCode": 13, "code": "Enter", "text": "\r"},
    "Tab": {"keyCode": 9, "code": "Tab"},
    "Escape": {"keyCode": 27, "code": "Escape"},
    "Backspace": {"keyCode": 8, "code": "Backspace"},
    "Delete": {"keyCode": 46, "code": "Delete"},
    "ArrowUp": {"keyCode": 38, "code": "ArrowUp"},
    "ArrowDown": {"keyCode": 40, "code": "ArrowDown"},
    "ArrowLeft": {"keyCode": 37, "code": "ArrowLeft"},
    "ArrowRight": {"keyCode": 39, "code": "ArrowRight"},
    "Home": {"keyCode": 36, "code": "Home"},
    "End": {"keyCode": 35, "code": "End"},
    "PageUp": {"keyCode": 33, "code": "PageUp"},
    "PageDown": {"keyCode": 34, "code": "PageDown"},
    "Control": {"keyCode": 17, "code": "ControlLeft"},
    "Shift": {"keyCode": 16, "code": "ShiftLeft"},
    "Alt": {"keyCode": 18, "code": "AltLeft"},
    "Meta": {"keyCode": 91, "code": "MetaLeft"},
}


class Keyboard:
    """
    Simulates keyboard input.

    Args:
        connection: Connection of the page receiving the keys.
    """

    def __init__(self, connection: CDPConnection) -> None:
        self._connection = connection
        self.modifiers = 0

    def _describe(self, key: str) -> Dict[str, Union[int, str]]:
        if key in KEY_DEFINITIONS:
            description = dict(KEY_DEFINITIONS[key])
        elif len(key) == 1:
            if key.isalpha():
                code = f"Key{key.upper()}"
            elif key.isdigit():
                code = f"Digit{key}"
            else:
                code = ""
            description = {"keyCode": ord(key.upper()), "code": code, "text": key}
        else:
            raise ValueError(f"Unknown key: {key}")
        description["key"] = key
        return description

    async def down(self, key: str) -> None:
        description = self._describe(key)
        self.modifiers |= MODIFIERS.get(key, 0)
        text = description.pop("text", "")
        await self._connection.send_command(
            "Input.dispatchKeyEvent",
            {
                "type": "keyDown" if text else "rawKeyDown",
                "text": text,
                "modifiers": self.modifiers,
                **description,
            },
        )

    async def up(self, key: str) -> None:
        description = self._describe(key)
        description.pop("text", None)
        self.modifiers &= ~MODIFIERS.get(key, 0)
        await self._connection.send_command(
            "Input.dispatchKeyEvent",
            {"type": "keyUp", "modifiers": self.modifiers, **description},
        )

    async def press(self, key: str, delay: float = 0) -> None:
        """Press and release a key, waiting ``delay`` seconds in between."""
        await self.down(key)
        if delay > 0:
            await asyncio.sleep(delay)
        await self.up(key)

    async def type(self, text: str, delay: float = 0) -> None:
        """Type text one character at a time."""
        for char in text:
            if char.isascii():
                await self.press(char, delay)
            else:
                await self._connection.send_command("Input.insertText", {"text": char})
                if delay > 0:
                    await asyncio.sleep(delay)


class Mouse:
    """
    Simulates mouse input.

    Args:
        connection: Connection of the page receiving the events.
        keyboard: Keyboard whose held modifiers apply to mouse events.
    """

    def __init__(self, connection: CDPConnection, keyboard: Keyboard) -> None:
        self._connection = connection
        self._keyboard = keyboard
        self.x = 0.0
        self.y = 0.0
        self._button = "none"

    async def _dispatch(self, type: str, click_count: int = 0, **extra) -> None:
        await self._connection.send_command(
            "Input.dispatchMouseEvent",
            {
                "type": type,
                "x": self.x,
                "y": self.y,
                "button": self._button,
                "clickCount": click_count,
                "modifiers": self._keyboard.modifiers,
                **extra,
            },
        )

    async def move(self, x: float, y: float, steps: int = 1) -> None:
        from_x, from_y = self.x, self.y
        for step in range(1, steps + 1):
            self.x = from_x + (x - from_x) * step / steps
            self.y = from_y + (y - from_y) * step / steps
            await self._dispatch("mouseMoved")

    async def down(self, button: str = "left", click_count: int = 1) -> None:
        self._button = button
        await self._dispatch("mousePressed", click_count)

    async def up(self, button: str = "left", click_count: int = 1) -> None:
        self._button = button
        await self._dispatch("mouseReleased", click_count)
        self._button = "none"

    async def click(
        self,
        x: float,
        y: float,
        button: str = "left",
        click_count: int = 1,
        delay: float = 0,
    ) -> None:
        """
        Click at a position.

        Args:
            x: X coordinate
            y: Y coordinate
            button: Mouse button (left, middle, right)
            click_count: Number of clicks
            delay: Delay between press and release in seconds
        """
        await self.move(x, y)
        await self.down(button, click_count)
        if delay > 0:
            await asyncio.sleep(delay)
        await self.up(button, click_count)

    async def wheel(self, delta_x: float = 0, delta_y: float = 0) -> None:
        await self._dispatch("mouseWheel", deltaX=delta_x, deltaY=delta_y)


class Touchscreen:
    """
    Simulates touch input.

    Args:
        connection: Connection of the page receiving the events.
        keyboard: Keyboard whose held modifiers apply to touch events.
    """

    def __init__(self, connection: CDPConnection, keyboard: Keyboard) -> None:
        self._connection = connection
        self._keyboard = keyboard

    async def tap(self, x: float, y: float, radius: Optional[float] = None) -> None:
        point = {"x": round(x), "y": round(y)}
        if radius is not None:
            point["radiusX"] = point["radiusY"] = radius
        await self._connection.send_command(
            "Input.dispatchTouchEvent",
            {
                "type": "touchStart",
                "touchPoints": [point],
                "modifiers": self._keyboard.modifiers,
            },
        )
        await self._connection.send_command(
            "Input.dispatchTouchEvent",
            {
                "type": "touchEnd",
                "touchPoints": [],
                "modifiers": self._keyboard.modifiers,
            },
        )
