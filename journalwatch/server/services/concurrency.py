"""
Fan-out of blocking store reads

Provider calls are synchronous sqlite reads; they run in worker threads via
asyncio.to_thread and are joined under a per-request deadline.
"""
import asyncio
import time
from typing import Any, Callable, List

from journalwatch.errors import RequestTimeoutError
from journalwatch.utils import get_logger

logger = get_logger(__name__)


class Deadline:
    """Absolute per-request time limit on the monotonic clock"""

    def __init__(self, seconds: float):
        self.seconds = seconds
        self._expires_at = time.monotonic() + seconds

    @classmethod
    def after(cls, seconds: float) -> "Deadline":
        return cls(seconds)

    def remaining(self) -> float:
        return max(0.0, self._expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0


async def run_concurrently(deadline: Deadline, *calls: Callable[[], Any]) -> List[Any]:
    """
    Run blocking zero-argument callables concurrently and join them

    Args:
        deadline: shared request deadline
        *calls: callables, typically functools.partial over provider methods

    Returns:
        list: results in the order of ``calls``

    Raises:
        the first failure of any call (the others are cancelled);
        RequestTimeoutError when the deadline elapses first
    """
    if not calls:
        return []

    tasks = [asyncio.ensure_future(asyncio.to_thread(call)) for call in calls]
    done, pending = await asyncio.wait(
        tasks,
        timeout=deadline.remaining(),
        return_when=asyncio.FIRST_EXCEPTION,
    )

    for task in pending:
        task.cancel()

    failures = [task.exception() for task in done if not task.cancelled() and task.exception() is not None]
    if failures:
        raise failures[0]

    if pending:
        logger.warning(f"Request deadline of {deadline.seconds}s exceeded, {len(pending)} reads cancelled")
        raise RequestTimeoutError(f"Request timed out after {deadline.seconds}s")

    return [task.result() for task in tasks]
