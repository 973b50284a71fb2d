"""Tests for RequestCoalescer."""

import asyncio

import pytest

from roamsync.services.coalescer import RequestCoalescer


class TestRequestCoalescer:
    """Test suite for in-flight request deduplication."""

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_call(self):
        coalescer = RequestCoalescer()
        gate = asyncio.Event()
        calls = 0

        async def producer():
            nonlocal calls
            calls += 1
            await gate.wait()
            return {"spots": [1, 2]}

        waiters = [asyncio.create_task(coalescer.dedupe("k", producer)) for _ in range(5)]
        await asyncio.sleep(0)
        assert coalescer.is_pending("k")

        gate.set()
        results = await asyncio.gather(*waiters)

        assert calls == 1
        assert all(r is results[0] for r in results)
        assert not coalescer.is_pending("k")

    @pytest.mark.asyncio
    async def test_different_keys_are_not_merged(self):
        coalescer = RequestCoalescer()
        calls = []

        async def producer(name):
            calls.append(name)
            return name

        results = await asyncio.gather(
            coalescer.dedupe("a", lambda: producer("a")),
            coalescer.dedupe("b", lambda: producer("b")),
        )

        assert results == ["a", "b"]
        assert sorted(calls) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_failure_is_shared_and_releases_slot(self):
        coalescer = RequestCoalescer()
        gate = asyncio.Event()

        async def producer():
            await gate.wait()
            raise RuntimeError("boom")

        first = asyncio.create_task(coalescer.dedupe("k", producer))
        second = asyncio.create_task(coalescer.dedupe("k", producer))
        await asyncio.sleep(0)
        gate.set()

        for task in (first, second):
            with pytest.raises(RuntimeError):
                await task
        assert coalescer.pending_keys() == []

    @pytest.mark.asyncio
    async def test_new_call_after_completion_runs_again(self):
        coalescer = RequestCoalescer()
        calls = 0

        async def producer():
            nonlocal calls
            calls += 1
            return calls

        assert await coalescer.dedupe("k", producer) == 1
        assert await coalescer.dedupe("k", producer) == 2

    @pytest.mark.asyncio
    async def test_cancelling_one_caller_keeps_shared_call(self):
        coalescer = RequestCoalescer()
        gate = asyncio.Event()

        async def producer():
            await gate.wait()
            return "done"

        cancelled = asyncio.create_task(coalescer.dedupe("k", producer))
        survivor = asyncio.create_task(coalescer.dedupe("k", producer))
        await asyncio.sleep(0)

        cancelled.cancel()
        with pytest.raises(asyncio.CancelledError):
            await cancelled

        gate.set()
        assert await survivor == "done"

    @pytest.mark.asyncio
    async def test_slot_released_only_after_producer_returned(self):
        coalescer = RequestCoalescer()
        observed = []

        async def producer():
            await asyncio.sleep(0)
            observed.append(coalescer.is_pending("k"))
            return "v"

        await coalescer.dedupe("k", producer)
        assert observed == [True]
        assert not coalescer.is_pending("k")
