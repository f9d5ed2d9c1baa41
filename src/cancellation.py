"""
Deadline and cancellation handling for network calls
"""

import asyncio
from typing import Any, Awaitable, Optional, Tuple

DONE = "done"
CANCELLED = "cancelled"
TIMEOUT = "timeout"


async def run_with_deadline(
    awaitable: Awaitable,
    timeout: float,
    cancel_event: Optional[asyncio.Event] = None
) -> Tuple[str, Any]:
    """
    Await awaitable for at most timeout seconds, abandoning it as soon as
    cancel_event is set. Returns (DONE, result), (CANCELLED, None) or
    (TIMEOUT, None); exceptions raised by awaitable propagate.
    Cancellation wins over a result that completes at the same moment.
    """
    task = asyncio.ensure_future(awaitable)
    if cancel_event is not None and cancel_event.is_set():
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        return CANCELLED, None

    waiters = {task}
    cancel_waiter = None
    if cancel_event is not None:
        cancel_waiter = asyncio.ensure_future(cancel_event.wait())
        waiters.add(cancel_waiter)

    try:
        done, _ = await asyncio.wait(waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
    finally:
        leftovers = [w for w in waiters if not w.done()]
        for waiter in leftovers:
            waiter.cancel()
        if leftovers:
            await asyncio.gather(*leftovers, return_exceptions=True)

    if cancel_waiter is not None and cancel_waiter in done:
        if task.done() and not task.cancelled():
            task.exception()  # mark retrieved; the result is discarded
        return CANCELLED, None
    if task in done:
        return DONE, task.result()
    return TIMEOUT, None
