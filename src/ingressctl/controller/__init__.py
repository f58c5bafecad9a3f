from .handlers import keys_for_owned_child_event, keys_for_parent_event
from .reconciler import IngressReconciler, construct_ingress
from .retry import RetryPolicy
from .controller import Controller

__all__ = [
    'Controller',
    'IngressReconciler',
    'RetryPolicy',
    'construct_ingress',
    'keys_for_owned_child_event',
    'keys_for_parent_event',
]
