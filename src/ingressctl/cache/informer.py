import dataclasses
import logging
import random

import anyio
import httpx
import lightkube

from ..exceptions import HttpError
from ..keys import object_key
from ..resources import is_same_version
from ..tasks import Task
from .events import CreateEvent, UpdateEvent, DeleteEvent


log = logging.getLogger(__name__)

ALL_NAMESPACES = '*'


@dataclasses.dataclass(eq=False)
class Informer(Task):
    """Keeps a store in sync with the api server by listing and then watching
    one resource kind, and forwards every change as an event to the streams
    attached to it.
    """
    api_client: object
    store: object
    kind: object
    namespace: str = ALL_NAMESPACES
    resync_after: int = 10 * 60 * 60 + 60 * random.randint(
        0, 9
    )  # 10 hours + 0..9 Minutes
    timeout: int = 60
    retry_delay: float = 5
    resource_version: str = None

    def __post_init__(self):
        super().__init__()
        self._streams = {}

    def __repr__(self):
        _out = [str(self.kind)]
        if self.namespace is not None:
            _out.append(self.namespace)
        if self.resource_version:
            _out.append(self.resource_version)
        _s = ' '.join(_out)
        return f'<Informer {_s}>'

    @property
    def synced(self):
        """Awaitable that completes once the initial list is stored."""
        return self._running.wait()

    def add_stream(self, stream, key=None):
        if key is None:
            key = stream
        self._streams[key] = stream

    def has_stream(self, stream=None, key=None):
        if key is None:
            key = stream
        return key in self._streams

    def remove_stream(self, stream=None, key=None):
        if key is None:
            key = stream
        self._streams.pop(key, None)

    def purge_streams(self):
        for stream in self._streams.values():
            stream.close()
        self._streams.clear()

    async def _dispatch(self, event):
        # Iterate over a copy, closed streams are removed while sending.
        for key, stream in list(self._streams.items()):
            try:
                await stream.send(event)
            except (anyio.ClosedResourceError, anyio.BrokenResourceError):
                self.remove_stream(key=key)

    async def _add_or_update(self, obj):
        try:
            old = self.store.get(obj)
        except KeyError:
            self.store.add(obj)
            await self._dispatch(CreateEvent(obj))
        else:
            if not is_same_version(obj, old):
                self.store.update(obj)
                await self._dispatch(UpdateEvent(old, obj))

    async def _delete(self, obj):
        try:
            # Prefer the last state we know about.
            obj = self.store.get(obj)
        except KeyError:
            pass
        self.store.delete(obj)
        await self._dispatch(DeleteEvent(obj))

    async def _process_event(self, event, obj):
        match event:
            case 'ADDED' | 'MODIFIED':
                await self._add_or_update(obj)
            case 'DELETED':
                await self._delete(obj)
            case _:
                log.debug('%s ignoring %s event', self, event)

    async def _list(self):
        log.debug('start listing %s', self.kind)
        seen = set()
        try:
            with anyio.fail_after(self.timeout):
                async for obj in (
                    resource_list := self.api_client.list(
                        self.kind.resource, namespace=self.namespace
                    )
                ):
                    seen.add(object_key(obj))
                    await self._add_or_update(obj)
                self.resource_version = resource_list.resourceVersion
        except httpx.HTTPStatusError as e:
            raise HttpError(
                e.request.method,
                e.request.url,
                e.response.status_code,
                message=f'HTTP error while listing {self.kind}'
            ) from e
        except TimeoutError as e:
            raise TimeoutError(f'TimeoutError while listing {self.kind}') from e

        # Anything we did not see was deleted while we were not watching.
        for obj in self.store.list():
            if object_key(obj) not in seen:
                await self._delete(obj)

        log.debug('done listing %s %s', self.kind, self.resource_version)

    async def _watch(self):
        log.debug('start watching %s %s', self.kind, self.resource_version)
        while True:
            try:
                async for event, obj in self.api_client.watch(
                    self.kind.resource,
                    resource_version=self.resource_version,
                    namespace=self.namespace,
                ):
                    await self._process_event(event, obj)
                    self.resource_version = obj.metadata.resourceVersion
            except httpx.HTTPStatusError as e:
                raise HttpError(
                    e.request.method,
                    e.request.url,
                    e.response.status_code,
                    message=f'HTTP error while watching {self.kind}'
                ) from e

    async def _listwatch(self):
        while True:
            try:
                await self._list()

                # Our store is synced.
                self._running.set()

                if self.resync_after is None:
                    await self._watch()
                else:
                    with anyio.move_on_after(self.resync_after) as scope:
                        await self._watch()
                    if scope.cancelled_caught:
                        log.debug('resyncing %s %s', self.kind, self.resource_version)

            except (TimeoutError, HttpError, lightkube.ApiError) as e:
                log.error('%s: list/watch failed: %s', self, e)
                await anyio.sleep(self.retry_delay)
            except httpx.TransportError as e:
                # Connection dropped or refused, start over with a fresh list.
                log.error('%s: list/watch connection failed: %r', self, e)
                await anyio.sleep(self.retry_delay)

    async def __call__(self, task_status=anyio.TASK_STATUS_IGNORED):
        log.debug('starting %s', self)

        try:
            async with anyio.create_task_group() as tg:
                self._task_group = tg

                try:
                    tg.start_soon(self._listwatch)
                    task_status.started()

                    await self.synced
                    log.info('started %s', self)

                    # Wait until told otherwise.
                    await self._stop.wait()
                    tg.cancel_scope.cancel()

                except anyio.get_cancelled_exc_class():
                    log.debug('canceled %s', self)
                    raise

                finally:
                    log.debug('stopping %s', self)
                    self.purge_streams()

        finally:
            log.info('stopped %s', self)
