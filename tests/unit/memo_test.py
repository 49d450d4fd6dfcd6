"""Unit tests for compute-once memo slots."""

from __future__ import annotations

import asyncio

import pytest

from docpage.core.memo import MemoSlots


@pytest.mark.asyncio
async def test_concurrent_first_access_starts_one_computation() -> None:
    slots = MemoSlots()
    calls = 0
    gate = asyncio.Event()

    async def compute() -> int:
        nonlocal calls
        calls += 1
        await gate.wait()
        return 42

    waiters = [asyncio.ensure_future(slots.run("answer", compute)) for _ in range(5)]
    await asyncio.sleep(0)
    gate.set()

    assert await asyncio.gather(*waiters) == [42] * 5
    assert calls == 1
    assert await slots.run("answer", compute) == 42
    assert calls == 1


@pytest.mark.asyncio
async def test_failure_is_memoized_and_re_raised() -> None:
    slots = MemoSlots()
    calls = 0

    async def boom() -> None:
        nonlocal calls
        calls += 1
        raise RuntimeError("store down")

    for _ in range(3):
        with pytest.raises(RuntimeError, match="store down"):
            await slots.run("broken", boom)
    assert calls == 1


@pytest.mark.asyncio
async def test_keys_are_independent() -> None:
    slots = MemoSlots()

    async def one() -> int:
        return 1

    async def two() -> int:
        return 2

    assert await slots.run(("cursor", 1), one) == 1
    assert await slots.run(("cursor", 2), two) == 2
    assert ("cursor", 1) in slots
    assert ("cursor", 3) not in slots


@pytest.mark.asyncio
async def test_cancelled_waiter_does_not_cancel_shared_work() -> None:
    slots = MemoSlots()
    gate = asyncio.Event()

    async def compute() -> str:
        await gate.wait()
        return "done"

    first = asyncio.ensure_future(slots.run("slow", compute))
    await asyncio.sleep(0)
    first.cancel()
    with pytest.raises(asyncio.CancelledError):
        await first

    gate.set()
    assert await slots.run("slow", compute) == "done"
