import logging

import anyio

from lightkube.models.meta_v1 import ObjectMeta
from lightkube.models.networking_v1 import (
    HTTPIngressPath,
    HTTPIngressRuleValue,
    IngressBackend,
    IngressRule,
    IngressServiceBackend,
    IngressSpec,
    ServiceBackendPort,
)
from lightkube.resources.networking_v1 import Ingress

from ..config import Settings
from ..exceptions import ObjectNotFound, TemporaryError, is_not_found
from ..keys import split_key
from ..resources import INGRESS, SERVICE, set_controller_reference


log = logging.getLogger(__name__)


def construct_ingress(service, settings=None):
    """Build the Ingress that routes all http traffic of the configured host
    to the given Service."""
    if settings is None:
        settings = Settings()
    ingress = Ingress(
        apiVersion=INGRESS.api_version,
        kind=INGRESS.kind,
        metadata=ObjectMeta(
            name=service.metadata.name,
            namespace=service.metadata.namespace,
        ),
        spec=IngressSpec(
            ingressClassName=settings.ingress_class,
            rules=[
                IngressRule(
                    host=settings.host,
                    http=HTTPIngressRuleValue(
                        paths=[
                            HTTPIngressPath(
                                path='/',
                                pathType='Prefix',
                                backend=IngressBackend(
                                    service=IngressServiceBackend(
                                        name=service.metadata.name,
                                        port=ServiceBackendPort(
                                            number=settings.service_port,
                                        ),
                                    ),
                                ),
                            ),
                        ],
                    ),
                ),
            ],
        ),
    )
    set_controller_reference(service, ingress, SERVICE)
    return ingress


class IngressReconciler:
    """Converges the Ingress of a Service towards what its annotations ask for.

    Every call re-reads the current state from the cache and issues at most
    one create or delete call.
    """

    def __init__(self, api_client, services, ingresses, settings=None):
        self.api_client = api_client
        self.services = services
        self.ingresses = ingresses
        self.settings = settings or Settings()

    def __repr__(self):
        return f'<{self.__class__.__name__} annotation: {self.settings.annotation}>'

    def wants_ingress(self, service):
        if service is None:
            return False
        annotations = service.metadata.annotations or {}
        return self.settings.annotation in annotations

    async def sync(self, key):
        namespace, name = split_key(key)

        try:
            service = await self.services.get(namespace, name)
        except ObjectNotFound:
            # The Service is gone, its Ingress may still need cleaning up.
            service = None

        try:
            ingress = await self.ingresses.get(namespace, name)
        except ObjectNotFound:
            ingress = None

        wanted = self.wants_ingress(service)
        if wanted and ingress is None:
            await self.create(construct_ingress(service, self.settings))
        elif not wanted and ingress is not None:
            await self.delete(namespace, name)
        else:
            log.debug('%s: nothing to do, ingress wanted: %s', key, wanted)

    async def create(self, ingress):
        log.info('creating %s %s/%s', INGRESS, ingress.metadata.namespace, ingress.metadata.name)
        try:
            with anyio.fail_after(self.settings.api_timeout):
                await self.api_client.create(ingress)
        except TimeoutError as e:
            raise TemporaryError(
                f'timeout creating ingress {ingress.metadata.namespace}/{ingress.metadata.name}'
            ) from e

    async def delete(self, namespace, name):
        log.info('deleting %s %s/%s', INGRESS, namespace, name)
        try:
            with anyio.fail_after(self.settings.api_timeout):
                await self.api_client.delete(INGRESS.resource, name, namespace=namespace)
        except TimeoutError as e:
            raise TemporaryError(f'timeout deleting ingress {namespace}/{name}') from e
        except Exception as e:
            if not is_not_found(e):
                raise
            log.debug('ingress %s/%s already gone', namespace, name)
