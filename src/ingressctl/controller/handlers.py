"""Translate watch events into queue keys.

Only Service adds and updates and owned Ingress deletes are of interest.
Everything else is reconstructed from the cache on every sync anyway.
"""
import logging

from ..exceptions import KeyExtractionError
from ..keys import object_key, owner_key


log = logging.getLogger(__name__)


def keys_for_parent_event(event):
    match type(event):
        case event.CreateEvent:
            obj = event.obj
        case event.UpdateEvent:
            if event.old == event.new:
                return
            obj = event.new
        case _:
            return
    try:
        yield object_key(obj)
    except KeyExtractionError as e:
        log.error('dropping event %r: %s', event, e)


def keys_for_owned_child_event(event, owner=None):
    match type(event):
        case event.DeleteEvent:
            obj = event.obj
        case _:
            return
    try:
        key = owner_key(obj, owner)
    except AttributeError:
        log.error('dropping event %r: object carries no metadata', event)
        return
    if key is None:
        log.debug('ignoring %r, not controlled by a %s', event, owner)
        return
    yield key
