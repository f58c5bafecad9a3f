import logging

import anyio

from ..config import Settings
from ..resources import INGRESS, SERVICE
from ..source import EventSource
from ..workqueue import Workqueue, default_controller_rate_limiter
from .handlers import keys_for_owned_child_event, keys_for_parent_event
from .reconciler import IngressReconciler
from .retry import RetryPolicy


log = logging.getLogger(__name__)


class WorkerLoggerAdapter(logging.LoggerAdapter):
    """Prefixes the log message with the workers number"""

    def process(self, msg, kwargs):
        worker = 'worker[%i]' % self.extra['num']
        return '%s: %s' % (worker, msg), kwargs


class Controller:
    """Keeps an Ingress next to every Service that asks for one.

    Services are watched for adds and updates, Ingresses for deletes. The
    resulting keys are worked off by a fixed number of workers, each key by
    at most one worker at a time.
    """

    def __init__(self, api_client, services, ingresses, settings=None, queue=None):
        self.settings = settings or Settings()
        self.api_client = api_client
        self.services = services
        self.ingresses = ingresses
        if queue is None:
            queue = Workqueue(
                default_controller_rate_limiter(
                    base_delay=self.settings.base_delay,
                    max_delay=self.settings.max_delay,
                    qps=self.settings.qps,
                    burst=self.settings.burst,
                )
            )
        self.queue = queue
        self.reconciler = IngressReconciler(
            api_client, services, ingresses, settings=self.settings
        )
        self.retry_policy = RetryPolicy(self.queue, max_retries=self.settings.max_retries)
        self.parent_source = EventSource(self.queue, SERVICE, keys_for_parent_event)
        self.child_source = EventSource(
            self.queue, INGRESS, keys_for_owned_child_event, kwargs={'owner': SERVICE}
        )

    def __repr__(self):
        return f'<{self.__class__.__name__} {SERVICE} -> {INGRESS} workers: {self.settings.workers}>'

    @property
    def event_sources(self):
        return [self.parent_source, self.child_source]

    async def process_next_item(self, logger=log):
        """Process one key. Returns False once the queue is shut down."""
        key, shutting_down = await self.queue.get()
        if shutting_down:
            return False

        logger.debug('processing %s', key)
        try:
            await self.reconciler.sync(key)
        except Exception as e:
            logger.debug('sync of %s failed: %r', key, e)
            await self.retry_policy.handle(key, e)
        else:
            await self.retry_policy.handle(key)
        finally:
            logger.debug('done processing %s', key)
            await self.queue.done(key)
        return True

    async def _worker(self, num):
        logger = WorkerLoggerAdapter(log, {'num': num})
        logger.debug('started')
        while await self.process_next_item(logger):
            pass
        logger.debug('stopped')

    async def run(self, stop):
        """Run the workers until the given event is set."""
        async with anyio.create_task_group() as tg:
            await tg.start(self.queue)
            async with anyio.create_task_group() as workers:
                for num in range(self.settings.workers):
                    workers.start_soon(self._worker, num)
                log.info('started %s', self)
                await stop.wait()
                log.info('shutting down %s', self)
                await self.queue.shutdown()
        log.info('stopped %s', self)

