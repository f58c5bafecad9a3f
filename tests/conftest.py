import logging

import anyio
import httpx
import pytest

from lightkube.core.exceptions import ApiError
from lightkube.models.meta_v1 import ObjectMeta
from lightkube.resources.core_v1 import Service
from lightkube.resources.networking_v1 import Ingress

from ingressctl.cache import Lister, Store
from ingressctl.resources import INGRESS, SERVICE, set_controller_reference

MARKER = 'ingress/http'


@pytest.fixture
def anyio_backend():
    return 'asyncio'


@pytest.fixture(autouse=True)
def restore_log_level():
    # The cli callback configures the package logger.
    log = logging.getLogger('ingressctl')
    level = log.level
    yield
    log.setLevel(level)


def api_error(code, method='DELETE', url='https://kubernetes/apis/networking.k8s.io/v1'):
    request = httpx.Request(method, url)
    response = httpx.Response(
        code,
        json={
            'apiVersion': 'v1',
            'kind': 'Status',
            'status': 'Failure',
            'code': code,
            'message': f'failed with {code}',
        },
        request=request,
    )
    return ApiError(request=request, response=response)


def make_service(name='svc1', namespace='ns', annotations=None, resource_version='1'):
    return Service(
        apiVersion='v1',
        kind='Service',
        metadata=ObjectMeta(
            name=name,
            namespace=namespace,
            uid=f'uid-{name}',
            annotations=annotations,
            resourceVersion=resource_version,
        ),
    )


def make_ingress(name='svc1', namespace='ns', owner=None, resource_version='1'):
    ingress = Ingress(
        apiVersion='networking.k8s.io/v1',
        kind='Ingress',
        metadata=ObjectMeta(name=name, namespace=namespace, resourceVersion=resource_version),
    )
    if owner is not None:
        set_controller_reference(owner, ingress, SERVICE)
    return ingress


class FailingLister:
    """A lister whose cache is unavailable."""

    def __init__(self, error):
        self.error = error

    async def get(self, namespace, name):
        raise self.error


class FakeApiClient:
    """Records mutations and applies them to the given ingress store, like the
    informer would after the api server accepted them."""

    def __init__(self, ingress_store=None, create_error=None, delete_error=None, delay=0):
        self.ingress_store = ingress_store
        self.create_error = create_error
        self.delete_error = delete_error
        self.delay = delay
        self.created = []
        self.deleted = []

    @property
    def calls(self):
        return len(self.created) + len(self.deleted)

    async def create(self, obj):
        if self.delay:
            await anyio.sleep(self.delay)
        if self.create_error is not None:
            raise self.create_error
        self.created.append(obj)
        if self.ingress_store is not None:
            self.ingress_store.add(obj)
        return obj

    async def delete(self, resource, name, namespace=None):
        if self.delay:
            await anyio.sleep(self.delay)
        if self.delete_error is not None:
            raise self.delete_error
        self.deleted.append((resource, namespace, name))
        if self.ingress_store is not None:
            key = f'{namespace}/{name}'
            if key not in self.ingress_store:
                raise api_error(404)
            del self.ingress_store[key]


class World:
    """Cached Services and Ingresses plus an api client writing into them."""

    def __init__(self, services=(), ingresses=()):
        self.service_store = Store()
        self.ingress_store = Store()
        for obj in services:
            self.service_store.add(obj)
        for obj in ingresses:
            self.ingress_store.add(obj)
        self.services = Lister(self.service_store, SERVICE)
        self.ingresses = Lister(self.ingress_store, INGRESS)
        self.api = FakeApiClient(self.ingress_store)


@pytest.fixture
def world():
    return World()
