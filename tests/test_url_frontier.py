"""Tests for the frontier queue."""

import asyncio

import pytest

from depthcrawl.crawler.url_frontier import FrontierQueue, WorkItem
from depthcrawl.errors import FrontierClosedError


def item(n: int, depth: int = 0) -> WorkItem:
    return WorkItem(uri=f"http://a.test/{n}", depth=depth)


class TestWorkItem:

    def test_is_immutable(self):
        work = item(1)
        with pytest.raises(AttributeError):
            work.depth = 3

    def test_equality_ignores_discovery_time(self):
        assert WorkItem("http://a.test/", 1) == WorkItem("http://a.test/", 1)


class TestFrontierQueue:

    def test_fifo_order(self):
        async def scenario():
            frontier = FrontierQueue()
            for n in range(3):
                await frontier.put(item(n))
            return [await frontier.get() for _ in range(3)]

        assert [work.uri for work in asyncio.run(scenario())] == [
            "http://a.test/0", "http://a.test/1", "http://a.test/2"
        ]

    def test_close_drains_buffered_items_first(self):
        async def scenario():
            frontier = FrontierQueue()
            frontier.put_nowait(item(1))
            frontier.put_nowait(item(2))
            frontier.close()
            assert frontier.qsize() == 2
            drained = [work async for work in frontier]
            assert frontier.drained
            assert await frontier.get() is None
            return drained

        assert [work.uri for work in asyncio.run(scenario())] == ["http://a.test/1", "http://a.test/2"]

    def test_put_after_close_raises(self):
        async def scenario():
            frontier = FrontierQueue()
            frontier.close()
            with pytest.raises(FrontierClosedError):
                frontier.put_nowait(item(1))
            with pytest.raises(FrontierClosedError):
                await frontier.put(item(1))

        asyncio.run(scenario())

    def test_close_is_idempotent(self):
        frontier = FrontierQueue()
        assert frontier.close() is True
        assert frontier.close() is False
        assert frontier.closed

    def test_consumer_wakes_on_close(self):
        async def scenario():
            frontier = FrontierQueue()
            consumer = asyncio.create_task(frontier.get())
            await asyncio.sleep(0)
            assert not consumer.done()
            frontier.close()
            return await asyncio.wait_for(consumer, timeout=1)

        assert asyncio.run(scenario()) is None

    def test_counters(self):
        async def scenario():
            frontier = FrontierQueue()
            frontier.put_nowait(item(1))
            frontier.put_nowait(item(2))
            await frontier.get()
            return frontier

        frontier = asyncio.run(scenario())
        assert frontier.enqueued == 2
        assert frontier.dequeued == 1
        assert frontier.qsize() == 1
