"""Tests for the rate-limited sequential runner."""
import asyncio

import pytest

from founderreach.services.task_runner import SequentialRunner


class FakeClock:
    def __init__(self, now=100.0):
        self.now = now
        self.sleeps = []

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def test_rejects_negative_interval():
    with pytest.raises(ValueError):
        SequentialRunner(-1)


def test_enforces_minimum_interval_between_tasks():
    clock = FakeClock()
    runner = SequentialRunner(1.0, clock=clock, sleep=clock.sleep)
    started = []

    async def handler(item):
        started.append((item, clock.now))
        clock.now += 0.25  # work takes a quarter second
        return item * 2

    results = asyncio.run(runner.run([1, 2, 3], handler))

    assert results == [2, 4, 6]
    assert clock.sleeps == [0.75, 0.75]
    assert [t for _, t in started] == [100.0, 101.0, 102.0]


def test_slow_tasks_are_not_delayed():
    clock = FakeClock()
    runner = SequentialRunner(1.0, clock=clock, sleep=clock.sleep)

    async def handler(item):
        clock.now += 5

    asyncio.run(runner.run(["a", "b"], handler))

    assert clock.sleeps == []


def test_handler_errors_propagate_and_stop_the_run():
    runner = SequentialRunner(0)
    seen = []

    async def handler(item):
        seen.append(item)
        if item == 2:
            raise RuntimeError("bad item")

    with pytest.raises(RuntimeError):
        asyncio.run(runner.run([1, 2, 3], handler))
    assert seen == [1, 2]
