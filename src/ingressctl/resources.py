import dataclasses

from lightkube.core import resource as lkr
from lightkube.models.meta_v1 import OwnerReference
from lightkube.resources.core_v1 import Service
from lightkube.resources.networking_v1 import Ingress

__all__ = [
    'INGRESS',
    'Kind',
    'SERVICE',
    'describe',
    'is_same_version',
    'new_controller_ref',
    'set_controller_reference',
]


@dataclasses.dataclass(frozen=True)
class Kind:
    """One of the two resource kinds this controller works with."""
    api_version: str
    kind: str
    resource: type

    def __str__(self):
        return f'{self.api_version}/{self.kind}'

    @classmethod
    def of(cls, resource):
        info = lkr.api_info(resource)
        return cls(info.resource.api_version, info.resource.kind, resource)


# The watched parent resource.
SERVICE = Kind.of(Service)
# The owned child resource.
INGRESS = Kind.of(Ingress)


def describe(obj):
    """Short human readable identity of an object for log messages."""
    api_version = getattr(obj, 'apiVersion', None)
    kind = getattr(obj, 'kind', None) or obj.__class__.__name__
    metadata = getattr(obj, 'metadata', None)
    name = getattr(metadata, 'name', None)
    namespace = getattr(metadata, 'namespace', None)
    resource_version = getattr(metadata, 'resourceVersion', None)
    out = []
    if api_version:
        out.append(f'{api_version}/{kind}')
    else:
        out.append(kind)
    if namespace is not None:
        out.append(f'{namespace}/{name}')
    elif name is not None:
        out.append(f'{name}')
    if resource_version is not None:
        out.append(resource_version)
    return ' '.join(out)


def is_same_version(o1, o2):
    o1_resource_version = o1.metadata.resourceVersion
    o2_resource_version = o2.metadata.resourceVersion
    return (
        o1_resource_version is not None and o1_resource_version == o2_resource_version
    )


def new_controller_ref(owner, kind):
    return OwnerReference(
        apiVersion=kind.api_version,
        kind=kind.kind,
        name=owner.metadata.name,
        uid=owner.metadata.uid,
        blockOwnerDeletion=True,
        controller=True,
    )


def set_controller_reference(owner, subject, kind):
    """Record owner as the controlling owner of subject."""
    if subject.metadata.ownerReferences is None:
        subject.metadata.ownerReferences = []
    for existing_ref in subject.metadata.ownerReferences:
        if existing_ref.controller:
            raise ValueError(f'already owned by a controller: {existing_ref!r}')
    ref = new_controller_ref(owner, kind)
    subject.metadata.ownerReferences.append(ref)
    return ref
