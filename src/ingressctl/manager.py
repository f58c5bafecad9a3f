import functools
import logging
import os.path
import signal

import anyio
import uvloop
from anyio import open_signal_receiver

from lightkube import AsyncClient, KubeConfig
from lightkube.core.exceptions import ConfigError as KubeConfigError

from . import exceptions
from .cache import Cache
from .config import Settings
from .controller import Controller
from .resources import INGRESS, SERVICE


log = logging.getLogger(__name__)

FIELD_MANAGER = 'ingressctl'


async def signal_handler(stop: anyio.Event):
    with open_signal_receiver(signal.SIGINT, signal.SIGTERM) as signals:
        async for signum in signals:
            if signum == signal.SIGINT:
                log.warning('Ctrl+C pressed, shutting down')
            else:
                log.warning('terminated, shutting down')
            stop.set()
            return


def make_api_client(settings):
    """Create the lightkube client used for list/watch and for mutations."""
    try:
        config = None
        if settings.kubeconfig is not None:
            config = KubeConfig.from_file(os.path.expanduser(settings.kubeconfig))
        elif settings.context is not None:
            config = KubeConfig.from_env()
        if config is not None:
            config = config.get(context_name=settings.context)
        return AsyncClient(config=config, field_manager=FIELD_MANAGER)
    except (KubeConfigError, OSError) as e:
        raise exceptions.ConfigError(f'unable to load kubernetes config: {e}') from e


class Manager:
    """Wires cache, informers and controller together and runs them until
    a signal or `stop()` tells it otherwise."""

    def __init__(self, settings=None, api_client=None):
        self.settings = settings or Settings()
        self.api_client = api_client
        self.cache = None
        self.controller = None
        self._stop = None

    def __repr__(self):
        return f'<Manager namespace: {self.settings.namespace} workers: {self.settings.workers}>'

    def run(self, debug=False):
        anyio.run(
            functools.partial(self, setup_signal_handler=True, debug=debug),
            backend_options={'loop_factory': uvloop.new_event_loop},
        )

    def stop(self):
        log.debug('stop %r', self)
        if self._stop is not None:
            self._stop.set()

    def setup(self):
        if self.api_client is None:
            self.api_client = make_api_client(self.settings)
        self.cache = Cache(
            self.api_client,
            namespace=self.settings.namespace,
            resync_after=self.settings.resync_after,
        )
        self.controller = Controller(
            self.api_client,
            self.cache.lister(SERVICE),
            self.cache.lister(INGRESS),
            settings=self.settings,
        )

    async def __call__(self, setup_signal_handler=False, debug=False, task_status=anyio.TASK_STATUS_IGNORED):
        self._stop = anyio.Event()
        log.debug('startup %s', self)
        try:
            self.setup()
            async with anyio.create_task_group() as tg:
                if setup_signal_handler:
                    tg.start_soon(signal_handler, self._stop)

                # Event sources have to listen before the informers start
                # pushing events at them.
                for source in self.controller.event_sources:
                    await tg.start(source)
                    self.cache.connect(source)
                await tg.start(self.cache)

                log.info('waiting for cache to sync')
                await self.cache.wait_for_sync()
                log.info('started %s', self)
                task_status.started()

                await self.controller.run(self._stop)

                # Workers are done, stop watching.
                tg.cancel_scope.cancel()
        except* exceptions.Error as eg:
            if debug:
                raise
            error_messages = []
            for error in exceptions.iterate_errors(eg):
                error_messages.append(str(error))
            raise exceptions.FatalError(' '.join(error_messages)) from eg

        log.info('stopped %s', self)
