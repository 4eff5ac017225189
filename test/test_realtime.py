"""
Preview broadcaster and SSE stream tests.

Test classes:
    TestPreviewBroadcaster — subscribe / publish / slow-consumer drops
    TestEventStream        — SSE formatting helper
"""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from pagebuilder.preview.surface import InMemoryPreviewSurface, PreviewBroadcaster, RenderContext


def _context(sequence: int = 1) -> RenderContext:
    return RenderContext(content="c", variables={}, timestamp=datetime.now(timezone.utc), sequence=sequence)


# ══════════════════════════════════════════════════════════════════════════════
# 1. TestPreviewBroadcaster
# ══════════════════════════════════════════════════════════════════════════════


class TestPreviewBroadcaster:
    def test_starts_empty(self):
        broadcaster = PreviewBroadcaster()
        assert broadcaster.subscriber_count() == 0
        assert broadcaster.latest is None

    def test_subscribe_and_unsubscribe(self):
        async def _run():
            broadcaster = PreviewBroadcaster()
            queue = await broadcaster.subscribe()
            assert broadcaster.subscriber_count() == 1
            await broadcaster.unsubscribe(queue)
            assert broadcaster.subscriber_count() == 0
            await broadcaster.unsubscribe(queue)  # second call is harmless

        asyncio.run(_run())

    def test_publish_reaches_every_subscriber(self):
        async def _run():
            broadcaster = PreviewBroadcaster()
            q1 = await broadcaster.subscribe()
            q2 = await broadcaster.subscribe()
            delivered = await broadcaster.publish("<html>1</html>", _context(7))
            return delivered, q1.get_nowait(), q2.get_nowait()

        delivered, e1, e2 = asyncio.run(_run())
        assert delivered == 2
        assert e1 == e2
        assert e1["type"] == "preview.updated"
        assert e1["data"] == {"sequence": 7, "html": "<html>1</html>"}
        assert "timestamp" in e1

    def test_new_subscriber_receives_latest_document(self):
        async def _run():
            broadcaster = PreviewBroadcaster()
            await broadcaster.deliver("<html>old</html>", _context(1))
            await broadcaster.deliver("<html>new</html>", _context(2))
            queue = await broadcaster.subscribe()
            return queue.qsize(), queue.get_nowait()

        size, event = asyncio.run(_run())
        assert size == 1
        assert event["data"]["html"] == "<html>new</html>"

    def test_full_queue_drops_for_slow_consumer_only(self):
        async def _run():
            broadcaster = PreviewBroadcaster(max_queue_size=1)
            slow = await broadcaster.subscribe()
            await broadcaster.publish("first", _context(1))
            fast = await broadcaster.subscribe()  # gets "first" as latest
            fast.get_nowait()
            delivered = await broadcaster.publish("second", _context(2))
            return delivered, slow.get_nowait(), fast.get_nowait()

        delivered, slow_event, fast_event = asyncio.run(_run())
        assert delivered == 1
        assert slow_event["data"]["html"] == "first"
        assert fast_event["data"]["html"] == "second"


class TestInMemorySurface:
    def test_records_documents(self):
        surface = InMemoryPreviewSurface()
        assert surface.latest is None
        asyncio.run(surface.deliver("<html></html>", _context(3)))
        assert surface.latest == "<html></html>"
        assert surface.contexts[0].sequence == 3


# ══════════════════════════════════════════════════════════════════════════════
# 2. TestEventStream
# ══════════════════════════════════════════════════════════════════════════════


class TestEventStream:
    @pytest.mark.asyncio
    async def test_stream_yields_connected_then_documents(self):
        from pagebuilder.routes.sse import _event_stream

        broadcaster = PreviewBroadcaster()
        request = MagicMock()
        request.is_disconnected = AsyncMock(side_effect=[False, True])

        stream = _event_stream(request, broadcaster, keepalive=1)
        first = await stream.__anext__()
        assert json.loads(first[len("data: ") :])["type"] == "connected"
        assert broadcaster.subscriber_count() == 1

        await broadcaster.publish("<html>doc</html>", _context(4))
        second = await stream.__anext__()
        assert second.startswith("data: ")
        assert second.endswith("\n\n")
        assert json.loads(second[len("data: ") :])["data"]["html"] == "<html>doc</html>"

        with pytest.raises(StopAsyncIteration):
            await stream.__anext__()
        assert broadcaster.subscriber_count() == 0

    @pytest.mark.asyncio
    async def test_stream_sends_keepalive_when_idle(self):
        from pagebuilder.routes.sse import _event_stream

        broadcaster = PreviewBroadcaster()
        request = MagicMock()
        request.is_disconnected = AsyncMock(return_value=False)

        stream = _event_stream(request, broadcaster, keepalive=0.01)
        await stream.__anext__()
        assert await stream.__anext__() == ": keepalive\n\n"
        await stream.aclose()
        assert broadcaster.subscriber_count() == 0
