import logging

import anyio
from anyio import TASK_STATUS_IGNORED
from anyio.abc import TaskStatus

from ..tasks import Task
from .limiters import default_controller_rate_limiter


log = logging.getLogger(__name__)


class Queue:
    """Insertion ordered set of items."""

    def __init__(self):
        self._items = {}

    def push(self, item):
        self._items[item] = None

    def pop(self):
        k = next(iter(self._items))
        del self._items[k]
        return k

    def __len__(self):
        return len(self._items)


class Workqueue(Task):
    """Deduplicating, rate limited queue of keys.

    An item is handed to at most one worker at a time. Adding an item that
    is already queued is a no-op; adding an item that is being processed
    marks it dirty and it is queued again once `done` is called for it.
    """

    def __init__(self, rate_limiter=None):
        super().__init__()
        if rate_limiter is None:
            rate_limiter = default_controller_rate_limiter()
        self._rate_limiter = rate_limiter
        self._buffer = []
        self._queue = Queue()
        self._delayed = {}
        self._processing = set()
        self._dirty = set()
        self._condition = anyio.Condition()
        self._accepting = False
        self._shutting_down = False

    def __len__(self):
        return len(self._queue)

    def __repr__(self):
        length = len(self)
        delayed = len(self._delayed)
        dirty = len(self._dirty)
        processing = len(self._processing)
        if self.is_running:
            return f'<Workqueue queued: {length}, delayed: {delayed}, dirty: {dirty}, processing: {processing}>'
        else:
            buffered = len(self._buffer)
            return f'<Workqueue queued: {length}, delayed: {delayed}, dirty: {dirty}, processing: {processing} buffered: {buffered}>'

    @property
    def is_shutting_down(self):
        return self._shutting_down

    def _add(self, item):
        # Must be called with the condition held.
        if item in self._dirty:
            # Already queued or waiting for the worker processing it.
            return
        self._dirty.add(item)
        if item not in self._processing:
            self._queue.push(item)
            self._condition.notify()

    async def add(self, item):
        """Add marks item as needing processing."""
        async with self._condition:
            if self._shutting_down:
                return
            if self._accepting:
                self._add(item)
            else:
                # If the queue has not yet been started we buffer items
                # and add them during startup.
                self._buffer.append(item)

    async def get(self):
        """Block until an item can be processed.

        Returns a `(item, shutting_down)` tuple. Once the queue is shut down
        the remaining items are still handed out, after that `(None, True)`
        is returned.
        """
        async with self._condition:
            while len(self._queue) == 0 and not self._shutting_down:
                await self._condition.wait()
            if len(self._queue) == 0:
                return None, True
            item = self._queue.pop()
            self._processing.add(item)
            self._dirty.discard(item)
            return item, False

    async def done(self, item):
        """Done marks item as done processing, and if it has been marked as dirty
        again while it was being processed, it will be re-added to the queue for
        re-processing.
        """
        async with self._condition:
            self._processing.discard(item)
            if item in self._dirty:
                self._queue.push(item)
                self._condition.notify()

    async def _add_after(self, item, delay):
        self._delayed[item] = delay
        try:
            await anyio.sleep(delay)
            await self.add(item)
        finally:
            self._delayed.pop(item, None)

    async def add_after(self, item, delay):
        """Add the item once the given delay in seconds has passed."""
        if self._shutting_down:
            return
        if delay <= 0:
            await self.add(item)
        elif self._task_group is None:
            # Not started yet, there is nobody to wait for the delay.
            await self.add(item)
        else:
            self._task_group.start_soon(self._add_after, item, delay)

    async def add_rate_limited(self, item):
        """Add the item after the rate limiter says it is ok."""
        await self.add_after(item, self._rate_limiter.delay(item))

    async def forget(self, item):
        """Forget about the item's failures. It is not removed from the queue."""
        self._rate_limiter.forget(item)

    async def num_requeues(self, item):
        return self._rate_limiter.count(item)

    async def shutdown(self):
        """Stop accepting new items and wake up all waiting workers.
        Already queued items are still handed out."""
        async with self._condition:
            self._shutting_down = True
            self._buffer.clear()
            self._condition.notify_all()
        self._stop.set()

    async def __call__(self, task_status: TaskStatus[None] = TASK_STATUS_IGNORED):
        log.debug('starting %r', self)
        async with anyio.create_task_group() as tg:
            self._task_group = tg

            # Add any buffered items. Adds racing with us wait for the
            # condition and see the queue accepting afterwards.
            async with self._condition:
                self._accepting = True
                while self._buffer:
                    self._add(self._buffer.pop(0))

            self._started(task_status)
            await self._stop.wait()
            # Pending delayed adds would be dropped anyway.
            tg.cancel_scope.cancel()
        self._task_group = None
        log.debug('stopped %r', self)
