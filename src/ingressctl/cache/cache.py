import logging

import anyio
from anyio import TASK_STATUS_IGNORED
from anyio.abc import TaskStatus

from ..tasks import Task
from .informer import ALL_NAMESPACES, Informer
from .store import Lister, Store


log = logging.getLogger(__name__)


class Cache(Task):
    """Local, eventually consistent copy of the watched resource kinds.

    There is exactly one store and one informer per kind.
    """

    def __init__(self, api_client, namespace=ALL_NAMESPACES, resync_after=None):
        super().__init__()
        self.api_client = api_client
        self.namespace = namespace
        self.resync_after = resync_after
        self._stores = {}
        self._informers = {}

    def __repr__(self):
        kinds = [str(kind) for kind in self._informers]
        return f'<Cache namespace: {self.namespace} kinds: {kinds}>'

    def get_store(self, kind):
        try:
            return self._stores[kind]
        except KeyError:
            store = self._stores[kind] = Store()
            return store

    def get_informer(self, kind):
        try:
            return self._informers[kind]
        except KeyError:
            kwargs = {}
            if self.resync_after is not None:
                kwargs['resync_after'] = self.resync_after
            informer = self._informers[kind] = Informer(
                self.api_client,
                self.get_store(kind),
                kind,
                namespace=self.namespace,
                **kwargs,
            )
            return informer

    def lister(self, kind):
        return Lister(self.get_store(kind), kind)

    def connect(self, source):
        """Feed the events of the sources kind into the given event source."""
        informer = self.get_informer(source.kind)
        if not informer.has_stream(key=source):
            informer.add_stream(source.stream(), key=source)

    async def wait_for_sync(self):
        for informer in self._informers.values():
            await informer.synced

    async def __call__(self, task_status: TaskStatus[None] = TASK_STATUS_IGNORED):
        log.debug('starting %r', self)

        try:
            async with anyio.create_task_group() as tg:
                self._task_group = tg

                try:
                    for informer in self._informers.values():
                        await tg.start(informer)

                    log.info('started %s', self)
                    self._started(task_status)

                    # Wait until told otherwise.
                    await self._stop.wait()
                    tg.cancel_scope.cancel()

                except anyio.get_cancelled_exc_class():
                    log.debug('canceled %s', self)
                    raise

                finally:
                    log.debug('stopping %s', self)

        finally:
            log.info('stopped %s', self)
