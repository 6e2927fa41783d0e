"""
Deferred Task Scheduling
========================

The model fires its ``update`` summary "on the next turn of the event loop":
after the first diff of a batch is merged it hands a single callback to a
scheduler, and every further mutation in the same turn only extends the
pending batch.

``call_soon`` returns whether the callback will actually run. A model only
counts its batch as scheduled when it will, so changes made while no callback
can be scheduled stay in the batch and go out with the next notification.

Two schedulers are provided:

- ``AsyncioScheduler`` (the default) runs the callback with ``loop.call_soon``
  on the running asyncio loop. Without a running loop nothing is scheduled;
  ``Model.flush()`` delivers the batch, or the first change made inside a loop
  schedules it.
- ``ManualScheduler`` only queues callbacks until ``run_pending()`` is called.
  Useful in tests and in synchronous applications that drive their own loop.

Any object with a ``call_soon(callback) -> bool`` method can be passed as a
model's scheduler.
"""

import asyncio
import logging
from collections import deque
from typing import Callable, Deque, Protocol

Task = Callable[[], None]


class Scheduler(Protocol):
    def call_soon(self, callback: Task) -> bool: ...


class ManualScheduler:
    """Queue callbacks until ``run_pending()`` is called."""

    def __init__(self):
        self._queue: Deque[Task] = deque()

    def call_soon(self, callback: Task) -> bool:
        self._queue.append(callback)
        return True

    def run_pending(self) -> int:
        """
        Run every queued callback, including ones queued while running.

        Returns:
            Number of callbacks run
        """
        count = 0
        while self._queue:
            callback = self._queue.popleft()
            callback()
            count += 1
        return count

    @property
    def pending(self) -> int:
        return len(self._queue)


class AsyncioScheduler:
    """Run callbacks on the running asyncio loop."""

    def call_soon(self, callback: Task) -> bool:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logging.debug("No running event loop, deferred task not scheduled")
            return False
        loop.call_soon(callback)
        return True


_default_scheduler: Scheduler = AsyncioScheduler()


def get_default_scheduler() -> Scheduler:
    """Scheduler used by models created without an explicit one."""
    return _default_scheduler


def set_default_scheduler(scheduler: Scheduler) -> Scheduler:
    """
    Replace the default scheduler.

    Returns:
        The previous default scheduler
    """
    global _default_scheduler
    previous = _default_scheduler
    _default_scheduler = scheduler
    return previous
