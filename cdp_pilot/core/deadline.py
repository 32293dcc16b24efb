"""
Deadline module for CDP Pilot.
Bounds pending operations with a maximum wait time.
"""
import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

from cdp_pilot.core.exceptions import DeadlineExceeded

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _abandon(task: asyncio.Future) -> None:
    """Cancel a task and let its cleanup run before returning."""
    task.cancel()
    await asyncio.wait({task})
    if not task.cancelled():
        # Mark a late exception as retrieved
        task.exception()


async def with_deadline(operation: Awaitable[T], timeout: Optional[float]) -> T:
    """
    Wait for an operation, failing if it does not settle in time.

    The operation's own result or exception is passed through unchanged,
    including a ``TimeoutError`` raised by the operation itself. When the
    timer wins, the operation is cancelled so its local listeners unwind and
    ``DeadlineExceeded`` is raised; whatever the operation already asked the
    browser to do is not undone.

    Args:
        operation: Awaitable to wait for, usually already started
        timeout: Maximum wait in seconds, or None to wait forever

    Returns:
        The operation's result

    Raises:
        DeadlineExceeded: If the timeout elapsed first
    """
    task = asyncio.ensure_future(operation)
    try:
        done, _ = await asyncio.wait({task}, timeout=timeout)
    except asyncio.CancelledError:
        await _abandon(task)
        raise

    if not done:
        logger.debug(f"Deadline of {timeout} seconds exceeded")
        await _abandon(task)
        raise DeadlineExceeded(timeout)

    return task.result()
