"""
Tests for CDP connection.
"""
import asyncio
import os

import aiohttp
import pytest

from cdp_pilot.core.connection import CDPConnection
from cdp_pilot.core.exceptions import CDPConnectionError, CDPProtocolError
from cdp_pilot.core.protocol import CDPProtocol


async def get_browser_ws_url() -> str:
    """Get the browser WebSocket URL."""
    async with aiohttp.ClientSession() as session:
        async with session.get("http://localhost:9222/json/version") as response:
            if response.status != 200:
                raise CDPConnectionError(f"Failed to get browser WebSocket URL: {response.status}")
            data = await response.json()
            return data.get("webSocketDebuggerUrl")


def test_parse_ws_url():
    assert CDPProtocol.parse_ws_url("localhost:9222/devtools/page/1") == "ws://localhost:9222/devtools/page/1"
    assert CDPProtocol.parse_ws_url("https://host/devtools") == "wss://host/devtools"
    assert CDPProtocol.parse_ws_url("ws://host/devtools") == "ws://host/devtools"


def test_parse_error_response():
    with pytest.raises(CDPProtocolError, match="No node with given id") as exc_info:
        CDPProtocol.parse_response({"id": 1, "error": {"code": -32000, "message": "No node with given id"}})
    assert exc_info.value.code == -32000


@pytest.mark.asyncio
async def test_connection_invalid_url():
    """Test connection with invalid URL."""
    connection = CDPConnection("ws://localhost:12345")

    with pytest.raises(CDPConnectionError):
        await connection.connect()


@pytest.mark.asyncio
async def test_send_command_not_connected():
    """Test sending command when not connected."""
    connection = CDPConnection("ws://localhost:9222")

    with pytest.raises(CDPConnectionError):
        await connection.send_command("Browser.getVersion")


@pytest.mark.asyncio
async def test_responses_resolve_their_own_request():
    connection = CDPConnection("ws://localhost:9222")
    loop = asyncio.get_running_loop()
    first, second = loop.create_future(), loop.create_future()
    connection.callbacks.update({1: first, 2: second})

    await connection._process_message({"id": 2, "result": {"value": "two"}})
    await connection._process_message(
        {"id": 1, "error": {"code": -32601, "message": "'Nope.nope' wasn't found"}}
    )

    assert second.result() == {"value": "two"}
    with pytest.raises(CDPProtocolError):
        first.result()
    assert connection.callbacks == {}


@pytest.mark.asyncio
async def test_events_are_dispatched_in_order():
    connection = CDPConnection("ws://localhost:9222")
    received = []

    async def async_handler(params):
        await asyncio.sleep(0)
        received.append(("async", params["n"]))

    connection.subscribe("Network.requestWillBeSent", lambda params: received.append(("sync", params["n"])))
    connection.subscribe("Network.requestWillBeSent", async_handler)

    for n in range(3):
        await connection._process_message({"method": "Network.requestWillBeSent", "params": {"n": n}})

    assert received == [
        ("sync", 0), ("async", 0),
        ("sync", 1), ("async", 1),
        ("sync", 2), ("async", 2),
    ]


@pytest.mark.asyncio
async def test_failing_handler_does_not_stop_dispatch():
    connection = CDPConnection("ws://localhost:9222")
    received = []

    def broken(params):
        raise RuntimeError("handler bug")

    connection.subscribe("Page.loadEventFired", broken)
    connection.subscribe("Page.loadEventFired", received.append)

    await connection.dispatch("Page.loadEventFired", {"timestamp": 1})
    assert received == [{"timestamp": 1}]


@pytest.mark.asyncio
async def test_unsubscribe_is_idempotent():
    connection = CDPConnection("ws://localhost:9222")
    received = []
    subscription = connection.subscribe("Page.loadEventFired", received.append)

    connection.unsubscribe(subscription)
    connection.unsubscribe(subscription)
    await connection.dispatch("Page.loadEventFired", {})

    assert received == []
    assert connection.listener_count() == 0


@pytest.mark.asyncio
async def test_close_fails_pending_commands():
    connection = CDPConnection("ws://localhost:9222")
    pending = asyncio.get_running_loop().create_future()
    connection.callbacks[1] = pending
    connection.connected = True

    await connection.close()

    with pytest.raises(CDPConnectionError):
        pending.result()
    assert not connection.connected


@pytest.mark.skipif(
    not os.environ.get("CHROME_AVAILABLE"),
    reason="Chrome not available",
)
@pytest.mark.asyncio
async def test_send_command():
    """Test sending command."""
    ws_url = await get_browser_ws_url()
    connection = CDPConnection(ws_url)
    try:
        await connection.connect()
        assert connection.connected
        result = await connection.send_command("Browser.getVersion")
        assert "product" in result
        assert "protocolVersion" in result
    finally:
        await connection.close()
