from app.core.rate_limit import SlidingWindowRateLimiter


def test_limit_applies_per_key_within_window() -> None:
    limiter = SlidingWindowRateLimiter(limit=2, window_seconds=60)

    assert limiter.allow('user:1', now=0.0)
    assert limiter.allow('user:1', now=1.0)
    assert not limiter.allow('user:1', now=2.0)
    assert limiter.allow('user:2', now=2.0)


def test_requests_are_admitted_again_after_window() -> None:
    limiter = SlidingWindowRateLimiter(limit=1, window_seconds=10)

    assert limiter.allow('client:10.0.0.1', now=0.0)
    assert not limiter.allow('client:10.0.0.1', now=10.0)
    assert limiter.allow('client:10.0.0.1', now=10.5)


def test_idle_callers_are_forgotten() -> None:
    limiter = SlidingWindowRateLimiter(limit=5, window_seconds=10)
    for index in range(100):
        limiter.allow(f'client:10.0.0.{index}', now=float(index) / 100)

    assert len(limiter) == 100

    limiter.allow('user:7', now=30.0)

    assert len(limiter) == 1
