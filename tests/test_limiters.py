import pytest

from ingressctl.workqueue import (
    BucketRateLimiter,
    ItemExponentialFailureRateLimiter,
    MaxOfRateLimiter,
    default_controller_rate_limiter,
)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_exponential_backoff_doubles_per_failure():
    limiter = ItemExponentialFailureRateLimiter(base_delay=0.005, max_delay=1000)
    delays = [limiter.delay('ns/svc1') for _ in range(4)]
    assert delays == pytest.approx([0.005, 0.01, 0.02, 0.04])
    assert limiter.count('ns/svc1') == 4


def test_exponential_backoff_is_capped():
    limiter = ItemExponentialFailureRateLimiter(base_delay=1, max_delay=10)
    delays = [limiter.delay('ns/svc1') for _ in range(6)]
    assert delays[-1] == 10
    assert max(delays) == 10


def test_exponential_backoff_survives_huge_exponents():
    limiter = ItemExponentialFailureRateLimiter(base_delay=1, max_delay=10)
    limiter.items['ns/svc1'] = 5000
    assert limiter.delay('ns/svc1') == 10


def test_exponential_backoff_is_per_item_and_forgettable():
    limiter = ItemExponentialFailureRateLimiter(base_delay=1, max_delay=100)
    limiter.delay('ns/a')
    limiter.delay('ns/a')
    assert limiter.delay('ns/b') == 1
    limiter.forget('ns/a')
    assert limiter.count('ns/a') == 0
    assert limiter.delay('ns/a') == 1
    # Forgetting unknown items is fine.
    limiter.forget('ns/unknown')


def test_bucket_limiter_delays_once_empty():
    clock = FakeClock()
    limiter = BucketRateLimiter(capacity=2, rate=10, clock=clock)
    assert limiter.delay('a') == 0
    assert limiter.delay('b') == 0
    assert limiter.delay('c') == pytest.approx(0.1)
    assert limiter.delay('d') == pytest.approx(0.2)
    assert limiter.count('a') == 0


def test_bucket_limiter_refills():
    clock = FakeClock()
    limiter = BucketRateLimiter(capacity=1, rate=10, clock=clock)
    assert limiter.delay('a') == 0
    assert limiter.delay('b') > 0
    clock.now += 1
    assert limiter.delay('c') == 0


def test_max_of_limiters():
    clock = FakeClock()
    limiter = MaxOfRateLimiter(
        ItemExponentialFailureRateLimiter(base_delay=1, max_delay=100),
        BucketRateLimiter(capacity=1, rate=1, clock=clock),
    )
    assert limiter.delay('a') == 1
    # The bucket is empty now and asks for longer than the backoff.
    assert limiter.delay('b') == 1
    assert limiter.delay('a') == 2
    assert limiter.count('a') == 2
    limiter.forget('a')
    assert limiter.count('a') == 0


def test_default_controller_rate_limiter():
    limiter = default_controller_rate_limiter(base_delay=0.5, max_delay=2, qps=100, burst=5)
    assert [limiter.delay('a') for _ in range(4)] == [0.5, 1, 2, 2]
