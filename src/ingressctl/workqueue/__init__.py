from .limiters import (
    RateLimiter,
    MaxOfRateLimiter,
    BucketRateLimiter,
    ItemExponentialFailureRateLimiter,
    default_controller_rate_limiter,
)
from .queue import Workqueue

__all__ = [
    'BucketRateLimiter',
    'ItemExponentialFailureRateLimiter',
    'MaxOfRateLimiter',
    'RateLimiter',
    'Workqueue',
    'default_controller_rate_limiter',
]
