import asyncio

import pytest

from slopshop.util.events import EventLogger, read_events
from slopshop.util.stream import ChunkStream


class TestChunkStream:
    def test_rejects_zero_capacity(self):
        with pytest.raises(ValueError):
            ChunkStream(capacity=0)

    def test_collect_in_order(self):
        async def run():
            stream = ChunkStream()
            for chunk in ["Hel", "lo", " world"]:
                assert stream.offer(chunk)
            stream.close()
            return await stream.collect()

        assert asyncio.run(run()) == "Hello world"

    def test_full_buffer_drops_and_counts(self):
        async def run():
            stream = ChunkStream(capacity=2)
            accepted = [stream.offer(c) for c in ["a", "b", "c", "d"]]
            stream.close()
            return accepted, stream.dropped, await stream.collect()

        accepted, dropped, text = asyncio.run(run())

        assert accepted == [True, True, False, False]
        assert dropped == 2
        assert text == "ab"

    def test_offer_after_close_is_refused(self):
        async def run():
            stream = ChunkStream()
            stream.offer("a")
            stream.close()
            refused = stream.offer("b")
            return refused, await stream.collect()

        refused, text = asyncio.run(run())

        assert refused is False
        assert text == "a"

    def test_close_is_idempotent(self):
        async def run():
            stream = ChunkStream()
            stream.close()
            stream.close()
            return stream.closed, await stream.collect()

        assert asyncio.run(run()) == (True, "")

    def test_concurrent_producer_and_consumer(self):
        async def run():
            stream = ChunkStream(capacity=1)

            async def produce():
                for chunk in ["x", "y", "z"]:
                    while not stream.offer(chunk):
                        await asyncio.sleep(0)
                    await asyncio.sleep(0)
                stream.close()

            producer = asyncio.create_task(produce())
            text = await stream.collect()
            await producer
            return text

        assert asyncio.run(run()) == "xyz"

    def test_drop_is_logged(self, tmp_path):
        events_file = tmp_path / "events.jsonl"

        async def run():
            stream = ChunkStream(capacity=1, event_logger=EventLogger(events_file))
            stream.offer("a")
            stream.offer("b")
            stream.close()
            await stream.collect()

        asyncio.run(run())

        records = list(read_events(events_file))
        assert [r.event_type for r in records] == ["chunk_dropped"]
        assert records[0].payload == {"dropped_total": 1}
