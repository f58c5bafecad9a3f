from .events import (
    CreateEvent,
    UpdateEvent,
    DeleteEvent,
)
from .store import Lister, Store
from .informer import ALL_NAMESPACES, Informer
from .cache import Cache

__all__ = [
    'ALL_NAMESPACES',
    'Cache',
    'CreateEvent',
    'DeleteEvent',
    'Informer',
    'Lister',
    'Store',
    'UpdateEvent',
]
