"""
Detached background writes.

Cache population and statistics refreshes must never block or fail the
request that triggered them. detach() schedules the coroutine on the running
loop and returns immediately; failures are logged from a done callback.
Callers must not assume the write has completed.

Lambda closes its event loop at the end of every invocation, which would
cancel anything still pending, so run_async() drains detached tasks (bounded
by a timeout) after the handler coroutine returns.
"""

import asyncio
import logging
from typing import Any, Awaitable, Coroutine, Optional, TypeVar

from .logging_utils import error_context

logger = logging.getLogger(__name__)

T = TypeVar("T")

DRAIN_TIMEOUT_SECONDS = 5.0

# Strong references so pending tasks are not garbage collected mid-flight
_background_tasks: set[asyncio.Task] = set()


def detach(coro: Coroutine[Any, Any, Any], description: str) -> Optional[asyncio.Task]:
    """
    Run a coroutine without awaiting it.

    Returns the task, or None when no loop is running (the coroutine is then
    closed and the write is dropped with a warning).
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        coro.close()
        logger.warning(f"No running event loop, dropped background task: {description}")
        return None

    task = loop.create_task(coro)
    _background_tasks.add(task)

    def _on_done(done: asyncio.Task) -> None:
        _background_tasks.discard(done)
        if done.cancelled():
            logger.warning(f"Background task cancelled: {description}")
            return
        error = done.exception()
        if error is not None:
            logger.error(
                f"Background task failed: {description}",
                extra={"task": description, **error_context(error)},
            )

    task.add_done_callback(_on_done)
    return task


def pending_background_tasks() -> int:
    """Number of detached tasks that have not finished yet."""
    return sum(1 for task in _background_tasks if not task.done())


async def drain_background_tasks(timeout: float = DRAIN_TIMEOUT_SECONDS) -> None:
    """Wait for detached tasks on the current loop, up to timeout seconds."""
    loop = asyncio.get_running_loop()
    while True:
        tasks = [t for t in _background_tasks if not t.done() and t.get_loop() is loop]
        if not tasks:
            return
        # Detached tasks may detach more work (e.g. statistics refresh)
        done, pending = await asyncio.wait(tasks, timeout=timeout)
        if pending:
            logger.warning(
                f"{len(pending)} background task(s) still pending after {timeout}s",
                extra={"pending_tasks": len(pending)},
            )
            return


def run_async(coro: Awaitable[T]) -> T:
    """
    Run a handler coroutine on a fresh event loop.

    Lambda can reuse execution contexts while creating new loops, so every
    invocation gets its own loop, which is drained of detached writes and
    closed before returning.
    """
    loop = asyncio.new_event_loop()
    try:
        result = loop.run_until_complete(coro)
        loop.run_until_complete(drain_background_tasks())
        return result
    finally:
        loop.close()
