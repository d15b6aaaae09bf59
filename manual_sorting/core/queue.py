from __future__ import annotations

"""Serialized execution of order tasks.

Every read-modify-write of the order document goes through one
:class:`OperationQueue`. Tasks run strictly one at a time, in the order they
were enqueued, whatever the number of concurrent producers. A failing task
is logged and the next one runs regardless.

There is no cancellation and no timeout: a task that never settles stalls the
queue. A warning is logged when a task exceeds the configured threshold so the
stall is visible in the logs.
"""

import asyncio
import functools
import inspect
import itertools
import logging
from typing import Any, Awaitable, Callable, Optional, Union

__all__ = ["OperationQueue", "QueueTask"]

logger = logging.getLogger(__name__)

QueueTask = Callable[[], Union[Awaitable[Any], Any]]


class OperationQueue:
    """FIFO, single-at-a-time task runner bound to the running event loop.

    Parameters
    ----------
    slow_task_warning_seconds
        Log a warning for tasks still running after this many seconds.
        ``0`` or ``None`` disables the warning.

    Examples
    --------
    >>> queue = OperationQueue()
    >>> async def main():
    ...     first = queue.enqueue(lambda: asyncio.sleep(0, "a"))
    ...     second = queue.enqueue(lambda: "b")
    ...     return await first, await second
    >>> asyncio.run(main())
    ('a', 'b')
    """

    def __init__(self, slow_task_warning_seconds: Optional[float] = None) -> None:
        self._tail: Optional[asyncio.Future] = None
        self._pending = 0
        self._counter = itertools.count(1)
        self._slow_after = slow_task_warning_seconds or None

    @property
    def pending(self) -> int:
        """Number of enqueued tasks that have not settled yet."""
        return self._pending

    def enqueue(self, task: QueueTask, name: Optional[str] = None) -> asyncio.Future:
        """Schedule *task* behind everything enqueued so far.

        Must be called from a coroutine or callback running on the event
        loop. The returned future resolves with the task's result, or raises
        its exception, once that specific task settles. It is shielded:
        cancelling it (directly or through ``asyncio.wait_for``) only stops
        the caller from waiting, the task itself still runs in turn.
        """
        loop = asyncio.get_running_loop()
        seq = next(self._counter)
        label = name or getattr(task, "__name__", "task")
        previous = self._tail
        settled = loop.create_future()
        runner = loop.create_task(self._run(previous, task, seq, label))
        runner.add_done_callback(functools.partial(self._on_settled, settled))
        self._tail = settled
        self._pending += 1
        logger.debug("Queue: enqueued #%d %s (pending=%d)", seq, label, self._pending)

        handle = asyncio.shield(runner)
        handle.add_done_callback(_mark_retrieved)
        return handle

    async def drain(self) -> None:
        """Wait until every task enqueued so far has settled.

        Tasks enqueued while draining (for instance follow-up reconciliation)
        are waited for as well.
        """
        while self._tail is not None and not self._tail.done():
            # asyncio.wait leaves the awaited future alone if drain is cancelled
            await asyncio.wait([self._tail])

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    async def _run(self, previous: Optional[asyncio.Future], task: QueueTask, seq: int, label: str) -> Any:
        if previous is not None and not previous.done():
            await asyncio.wait([previous])

        loop = asyncio.get_running_loop()
        watchdog = None
        if self._slow_after:
            watchdog = loop.call_later(
                self._slow_after,
                logger.warning,
                "Queue: task #%d %s still running after %ss; later tasks are waiting",
                seq, label, self._slow_after,
            )

        logger.debug("Queue: running #%d %s", seq, label)
        try:
            result = task()
            if inspect.isawaitable(result):
                result = await result
        except Exception:
            logger.exception("Queue: task #%d %s failed", seq, label)
            raise
        finally:
            if watchdog is not None:
                watchdog.cancel()
        logger.debug("Queue: finished #%d %s", seq, label)
        return result

    def _on_settled(self, settled: asyncio.Future, runner: asyncio.Task) -> None:
        self._pending -= 1
        # the successor only ever waits on this internal future, never on a
        # future a caller holds
        settled.set_result(None)
        if self._tail is settled:
            self._tail = None
        _mark_retrieved(runner)


def _mark_retrieved(future: asyncio.Future) -> None:
    # Failures are logged in _run and still raised to any caller awaiting
    # the task; fire-and-forget enqueues must not warn at garbage collection.
    if not future.cancelled():
        future.exception()
