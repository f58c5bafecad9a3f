import logging

from ..exceptions import PermanentError


log = logging.getLogger(__name__)


class RetryPolicy:
    """Decides what happens to a key after it has been synced."""

    def __init__(self, queue, max_retries=10):
        self.queue = queue
        self.max_retries = max_retries

    def __repr__(self):
        return f'<{self.__class__.__name__} max_retries: {self.max_retries}>'

    async def handle(self, key, error=None):
        if error is None:
            # Success, a later failure starts backing off from scratch.
            await self.queue.forget(key)
            return

        if isinstance(error, PermanentError):
            log.error('dropping %s: %s', key, error)
            await self.queue.forget(key)
            return

        retries = await self.queue.num_requeues(key)
        if retries < self.max_retries:
            log.debug('requeuing %s with rate limiting after %r', key, error)
            await self.queue.add_rate_limited(key)
            return

        log.warning('dropping %s out of the queue after %i retries: %s', key, retries, error)
        await self.queue.forget(key)
