import dataclasses
import logging
import typing

import anyio
from anyio import TASK_STATUS_IGNORED
from anyio.abc import TaskStatus

from .tasks import Task


__all__ = [
    'EventSource',
]

log = logging.getLogger(__name__)


@dataclasses.dataclass(eq=False)
class EventSource(Task):
    """Turns the events of one resource kind into queue keys.

    The handler is called with every event received from the informers this
    source is connected to and returns the keys to add to the queue.
    """
    queue: object
    kind: object
    handler: typing.Callable
    kwargs: dict = dataclasses.field(default_factory=dict)

    def __post_init__(self):
        Task.__init__(self)
        self.tx, self.rx = anyio.create_memory_object_stream(max_buffer_size=100)

    def __repr__(self):
        return f'<{self.__class__.__name__} {self.kind} {self.handler.__name__}>'

    def stream(self):
        """Return a new sending end for an informer to push events into."""
        return self.tx.clone()

    async def handle(self, event):
        log.debug('received event: %r', event)
        try:
            keys = list(self.handler(event, **self.kwargs) or ())
        except Exception:
            # Nothing sensible to retry, the next event will tell us more.
            log.exception('failed to handle %r', event)
            return
        for key in keys:
            log.debug('enqueue %s', key)
            await self.queue.add(key)

    async def _handle_events(self):
        async with self.rx:
            async for event in self.rx:
                await self.handle(event)

    async def __call__(self, task_status: TaskStatus[None] = TASK_STATUS_IGNORED):
        log.debug('starting %s', self)

        try:
            async with anyio.create_task_group() as tg:
                self._task_group = tg

                try:
                    tg.start_soon(self._handle_events)

                    log.debug('started %s', self)
                    self._started(task_status)

                    # Wait until told otherwise.
                    await self._stop.wait()
                    tg.cancel_scope.cancel()

                except anyio.get_cancelled_exc_class():
                    log.debug('canceled %s', self)
                    raise

                finally:
                    log.debug('stopping %s', self)
                    self.tx.close()

        finally:
            log.debug('stopped %s', self)
