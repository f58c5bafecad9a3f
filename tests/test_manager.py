import anyio
import pytest

from ingressctl.config import Settings
from ingressctl.exceptions import ConfigError, FatalError
from ingressctl.manager import Manager, make_api_client
from ingressctl.resources import INGRESS, SERVICE

from conftest import MARKER, FakeApiClient, make_service

pytestmark = pytest.mark.anyio


class FakeList:
    def __init__(self, items):
        self.items = items
        self.resourceVersion = '1'

    def __aiter__(self):
        return self._iter()

    async def _iter(self):
        for item in self.items:
            yield item


class FakeCluster(FakeApiClient):
    """Lists the given objects, never sends watch events."""

    def __init__(self, services=(), ingresses=()):
        super().__init__()
        self.objects = {SERVICE.resource: list(services), INGRESS.resource: list(ingresses)}

    def list(self, resource, namespace=None):
        return FakeList(self.objects[resource])

    async def watch(self, resource, resource_version=None, namespace=None):
        await anyio.sleep_forever()
        yield


async def test_manager_converges_and_stops():
    cluster = FakeCluster(services=[make_service('svc1', 'ns', annotations={MARKER: 'true'})])
    manager = Manager(Settings(), api_client=cluster)

    async with anyio.create_task_group() as tg:
        with anyio.fail_after(5):
            await tg.start(manager)
            while not cluster.created:
                await anyio.sleep(0.01)
        manager.stop()

    assert [obj.metadata.name for obj in cluster.created] == ['svc1']


async def test_make_api_client_with_missing_kubeconfig(tmp_path):
    with pytest.raises(ConfigError):
        make_api_client(Settings(kubeconfig=str(tmp_path / 'missing')))


async def test_startup_errors_are_fatal(tmp_path):
    manager = Manager(Settings(kubeconfig=str(tmp_path / 'missing')))
    with pytest.raises(FatalError):
        await manager()
