from __future__ import annotations

import asyncio

import pytest

from leaderboard_api.services.rate_limiter import FixedWindowRateLimiter


def admit_many(limiter: FixedWindowRateLimiter, client_id: str, times: list[float]) -> list[bool]:
    async def run():
        return [await limiter.admit(client_id, now) for now in times]

    return asyncio.run(run())


def test_capacity_is_admitted_and_next_is_denied():
    limiter = FixedWindowRateLimiter(window_seconds=60, max_submissions=15)

    results = admit_many(limiter, "1.2.3.4", [100.0 + i for i in range(16)])
    assert results == [True] * 15 + [False]


def test_window_boundary_is_inclusive_and_resets_after():
    limiter = FixedWindowRateLimiter(window_seconds=60, max_submissions=2)

    results = admit_many(limiter, "ip", [0.0, 1.0, 60.0, 60.001, 60.5, 60.6])
    # At exactly W the first window is still active; just past it a new one starts.
    assert results == [True, True, False, True, True, False]


def test_denied_attempts_do_not_extend_the_window():
    limiter = FixedWindowRateLimiter(window_seconds=10, max_submissions=1)

    results = admit_many(limiter, "ip", [0.0, 5.0, 9.0, 10.5])
    assert results == [True, False, False, True]


def test_clients_are_counted_independently():
    limiter = FixedWindowRateLimiter(window_seconds=60, max_submissions=1)

    async def run():
        return [
            await limiter.admit("a", 0.0),
            await limiter.admit("b", 0.0),
            await limiter.admit("a", 1.0),
        ]

    assert asyncio.run(run()) == [True, True, False]


def test_expired_counters_are_evicted():
    limiter = FixedWindowRateLimiter(window_seconds=60, max_submissions=5)

    async def run():
        for index in range(10):
            await limiter.admit(f"client-{index}", 0.0)
        assert len(limiter) == 10
        await limiter.admit("late", 61.0)

    asyncio.run(run())
    assert len(limiter) == 1


def test_concurrent_attempts_never_exceed_capacity():
    limiter = FixedWindowRateLimiter(window_seconds=60, max_submissions=15)

    async def run():
        return await asyncio.gather(*(limiter.admit("ip", 0.0) for _ in range(40)))

    assert sum(asyncio.run(run())) == 15


@pytest.mark.parametrize(("window", "capacity"), [(0, 5), (60, 0)])
def test_rejects_non_positive_configuration(window, capacity):
    with pytest.raises(ValueError):
        FixedWindowRateLimiter(window_seconds=window, max_submissions=capacity)
