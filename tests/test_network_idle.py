"""
Tests for network idle detection.
"""
import asyncio

import pytest

from cdp_pilot.browser.waits import NetworkIdleWait
from cdp_pilot.core.exceptions import DeadlineExceeded

EPSILON = 0.01

NETWORK_EVENTS = (
    "Network.requestWillBeSent",
    "Network.loadingFinished",
    "Network.loadingFailed",
)


def network_listeners(connection) -> int:
    return sum(connection.listener_count(event) for event in NETWORK_EVENTS)


@pytest.mark.asyncio
async def test_idle_on_empty_request_stream(page, connection):
    loop = asyncio.get_running_loop()
    start = loop.time()

    await page.wait_for_network_idle(idle_time=0.1, idle_connections=0)

    assert 0.1 - EPSILON <= loop.time() - start < 0.5
    assert network_listeners(connection) == 0


@pytest.mark.asyncio
async def test_request_postpones_idle_until_it_finishes(page, connection):
    loop = asyncio.get_running_loop()
    start = loop.time()

    task = asyncio.create_task(
        page.wait_for_network_idle(idle_time=0.2, idle_connections=0)
    )
    await asyncio.sleep(0)
    await connection.emit("Network.requestWillBeSent", {"requestId": "1"})
    connection.emit_later(0.1, "Network.loadingFinished", {"requestId": "1"})

    await task
    # Finished at 0.1, then a full quiet window of 0.2
    assert loop.time() - start >= 0.3 - EPSILON


@pytest.mark.asyncio
async def test_failed_request_counts_as_finished(page, connection):
    task = asyncio.create_task(
        page.wait_for_network_idle(idle_time=0.05, idle_connections=0)
    )
    await asyncio.sleep(0)
    await connection.emit("Network.requestWillBeSent", {"requestId": "1"})
    await asyncio.sleep(0.1)
    assert not task.done()

    await connection.emit("Network.loadingFailed", {"requestId": "1"})
    await asyncio.wait_for(task, 1.0)


@pytest.mark.asyncio
async def test_unmatched_finish_does_not_go_negative(connection):
    idle = NetworkIdleWait(connection, idle_time=10.0, idle_connections=0)
    try:
        await connection.emit("Network.loadingFinished", {"requestId": "x"})
        await connection.emit("Network.loadingFailed", {"requestId": "y"})
        assert idle.inflight == 0
        assert idle.armed

        await connection.emit("Network.requestWillBeSent", {"requestId": "1"})
        assert idle.inflight == 1
        assert not idle.armed
    finally:
        idle.cancel()


@pytest.mark.asyncio
async def test_threshold_arms_and_disarms_timer(connection):
    idle = NetworkIdleWait(connection, idle_time=10.0, idle_connections=2)
    try:
        for request_id in ("1", "2"):
            await connection.emit("Network.requestWillBeSent", {"requestId": request_id})
        assert idle.inflight == 2
        assert idle.armed

        await connection.emit("Network.requestWillBeSent", {"requestId": "3"})
        assert not idle.armed

        await connection.emit("Network.loadingFinished", {"requestId": "3"})
        assert idle.inflight == 2
        assert idle.armed
    finally:
        idle.cancel()


@pytest.mark.asyncio
async def test_burst_restarts_quiet_window(page, connection):
    loop = asyncio.get_running_loop()
    start = loop.time()
    task = asyncio.create_task(
        page.wait_for_network_idle(idle_time=0.1, idle_connections=0)
    )
    await asyncio.sleep(0)

    for request_id in ("1", "2", "3"):
        await asyncio.sleep(0.06)
        await connection.emit("Network.requestWillBeSent", {"requestId": request_id})
        await connection.emit("Network.loadingFinished", {"requestId": request_id})
        assert not task.done()

    await task
    assert loop.time() - start >= 0.18 + 0.1 - EPSILON


@pytest.mark.asyncio
async def test_settled_wait_ignores_late_events(connection):
    idle = NetworkIdleWait(connection, idle_time=0.01, idle_connections=0)
    await idle.wait()

    assert idle.done
    assert network_listeners(connection) == 0
    await connection.dispatch("Network.requestWillBeSent", {"requestId": "1"})
    assert idle.inflight == 0


@pytest.mark.asyncio
async def test_busy_network_times_out_and_releases_listeners(page, connection):
    page.timeout = 0.1

    async def start_request():
        await asyncio.sleep(0.01)
        await connection.emit("Network.requestWillBeSent", {"requestId": "1"})

    starter = asyncio.create_task(start_request())
    with pytest.raises(DeadlineExceeded):
        await page.wait_for_network_idle(idle_time=0.05)
    await starter

    assert network_listeners(connection) == 0


@pytest.mark.asyncio
async def test_per_call_timeout_overrides_page_default(page, connection):
    loop = asyncio.get_running_loop()
    start = loop.time()

    async def start_request():
        await asyncio.sleep(0.01)
        await connection.emit("Network.requestWillBeSent", {"requestId": "1"})

    starter = asyncio.create_task(start_request())
    with pytest.raises(DeadlineExceeded):
        await page.wait_for_network_idle(idle_time=0.05, timeout=0.1)
    await starter

    assert loop.time() - start < page.timeout
