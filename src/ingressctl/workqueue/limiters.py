import dataclasses
import math
import time

from typing import Dict, List


class RateLimiter:
    # Interface

    def delay(self, item):
        """Return how long to wait before the item may be added again."""
        raise NotImplementedError()

    def forget(self, item):
        """Stop tracking the item, resetting any backoff state."""
        raise NotImplementedError()

    def count(self, item):
        """Return how many times the item has been rate limited."""
        raise NotImplementedError()


@dataclasses.dataclass(init=False)
class MaxOfRateLimiter(RateLimiter):
    """Combines limiters, the longest delay wins."""
    limiters: List[RateLimiter]

    def __init__(self, *args):
        self.limiters = list(args)

    def delay(self, item):
        return max([limiter.delay(item) for limiter in self.limiters])

    def forget(self, item):
        for limiter in self.limiters:
            limiter.forget(item)

    def count(self, item):
        return max([limiter.count(item) for limiter in self.limiters])


@dataclasses.dataclass
class BucketRateLimiter(RateLimiter):
    """Overall rate limit shared by all items, a token bucket."""
    # Maximum number of tokens in the bucket
    capacity: int = 100
    # Rate of token addition per second
    rate: float = 10
    clock: object = dataclasses.field(default=time.monotonic, repr=False)

    def __post_init__(self):
        self._tokens = self.capacity
        self._last_added = self.clock()
        self._missing_tokens = 0

    def _add_tokens(self):
        now = self.clock()
        tokens_to_add = int((now - self._last_added) * self.rate)
        if tokens_to_add > 0:
            self._tokens = min(self.capacity, self._tokens + tokens_to_add)
            self._last_added = now

    def delay(self, item):
        self._add_tokens()
        delay = 0
        if self._tokens > 0:
            self._missing_tokens = 0
            self._tokens -= 1
        else:
            # Wait one token interval for every token we are short of.
            # See https://danielmangum.com/posts/controller-runtime-client-go-rate-limiting/
            self._missing_tokens += 1
            delay = self._missing_tokens / self.rate
        return delay

    def forget(self, item):
        pass

    def count(self, item):
        return 0


@dataclasses.dataclass
class ItemExponentialFailureRateLimiter(RateLimiter):
    """Per item backoff: base_delay * 2^failures, capped at max_delay."""
    base_delay: float = 0.005  # 5 Milliseconds
    max_delay: float = 1000  # 1000 Seconds
    items: Dict[object, int] = dataclasses.field(default_factory=dict, init=False)

    def delay(self, item):
        current = self.items.get(item, 0)
        self.items[item] = current + 1
        try:
            backoff = self.base_delay * math.pow(2, current)
        except OverflowError:
            return self.max_delay
        return min(backoff, self.max_delay)

    def forget(self, item):
        self.items.pop(item, None)

    def count(self, item):
        return self.items.get(item, 0)


def default_controller_rate_limiter(base_delay=0.005, max_delay=1000, qps=10, burst=100):
    """Per item exponential backoff combined with an overall token bucket."""
    return MaxOfRateLimiter(
        ItemExponentialFailureRateLimiter(base_delay=base_delay, max_delay=max_delay),
        BucketRateLimiter(capacity=burst, rate=qps),
    )
