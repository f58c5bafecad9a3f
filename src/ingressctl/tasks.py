import anyio
from anyio import TASK_STATUS_IGNORED
from anyio.abc import TaskStatus


class Task:
    """A long running component that is started in a task group.

    Subclasses implement `__call__` and call `_started` once they are ready.
    """

    def __init__(self):
        self._task_group = None
        self._running = anyio.Event()
        self._stop = anyio.Event()

    @property
    def is_running(self):
        return self._running.is_set()

    def _started(self, task_status: TaskStatus[None] = TASK_STATUS_IGNORED):
        task_status.started()
        self._running.set()

    async def __call__(self, task_status: TaskStatus[None] = TASK_STATUS_IGNORED):
        raise NotImplementedError()

    def stop(self):
        self._stop.set()
        if self._task_group:
            self._task_group.cancel_scope.cancel()
