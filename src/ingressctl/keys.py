"""Queue keys.

A key is the `namespace/name` string of an object, or just `name` for
cluster scoped objects. Every event about the same object maps to the same
key, which is what lets the workqueue collapse them.
"""
from .exceptions import KeyExtractionError, MalformedKeyError

__all__ = [
    'controller_of',
    'object_key',
    'owner_key',
    'split_key',
]


def object_key(obj):
    """Create a key from the given object."""
    try:
        name = obj.metadata.name
        namespace = getattr(obj.metadata, 'namespace', None)
    except AttributeError as e:
        raise KeyExtractionError(obj) from e
    if not name:
        raise KeyExtractionError(obj)
    if namespace:
        return f'{namespace}/{name}'
    else:
        return name


def split_key(key):
    """Split a key into namespace and name.
    The namespace is None for keys of cluster scoped objects."""
    if not isinstance(key, str):
        raise MalformedKeyError(key)
    parts = key.split('/')
    match parts:
        case [name] if name:
            return None, name
        case [namespace, name] if namespace and name:
            return namespace, name
    raise MalformedKeyError(key)


def controller_of(obj):
    """Return the owner reference that points at the controller of obj."""
    refs = getattr(obj.metadata, 'ownerReferences', None) or []
    for ref in refs:
        if ref.controller:
            return ref
    return None


def owner_key(obj, kind):
    """Return the key of the controlling owner of obj if it is of the given
    kind, None otherwise. Owners always live in the namespace of the
    objects they own."""
    ref = controller_of(obj)
    if ref is None or ref.kind != kind.kind:
        return None
    if ref.apiVersion and ref.apiVersion != kind.api_version:
        return None
    namespace = getattr(obj.metadata, 'namespace', None)
    if namespace:
        return f'{namespace}/{ref.name}'
    return ref.name
