import copy

from ..exceptions import ObjectNotFound
from ..keys import object_key


class Store:
    """Objects of one kind, keyed by `namespace/name`."""

    def __init__(self, key_func=None):
        if key_func is None:
            key_func = object_key
        self.key_func = key_func
        self._items = {}

    def __repr__(self):
        keys = list(self.keys())
        return f'<Store {keys}>'

    def __len__(self):
        return len(self._items)

    def __contains__(self, key):
        return key in self._items

    def __setitem__(self, key, obj):
        self._items[key] = obj

    def __getitem__(self, key):
        return self._items[key]

    def __delitem__(self, key):
        del self._items[key]

    def add(self, obj):
        """Add the given item to the store."""
        key = self.key_func(obj)
        self[key] = obj

    def update(self, obj):
        """Update the given item in the store."""
        key = self.key_func(obj)
        self[key] = obj

    def delete(self, obj):
        """Delete the given item from the store."""
        key = self.key_func(obj)
        self._items.pop(key, None)

    def keys(self):
        """Return a list of keys of all items in the store."""
        return self._items.keys()

    def list(self):
        """Return a list of all items in the store."""
        return list(self._items.values())

    def get(self, obj):
        """Get the stored version of the given item."""
        key = self.key_func(obj)
        return self[key]


class Lister:
    """Read access to a store for one resource kind.

    Objects are returned as copies so callers can not change the cached
    state by accident.
    """

    def __init__(self, store, kind):
        self.store = store
        self.kind = kind

    def __repr__(self):
        return f'<Lister {self.kind} {len(self.store)}>'

    async def get(self, namespace, name):
        if namespace:
            key = f'{namespace}/{name}'
        else:
            key = name
        try:
            obj = self.store[key]
        except KeyError as e:
            raise ObjectNotFound(self.kind, name, namespace=namespace) from e
        return copy.deepcopy(obj)

