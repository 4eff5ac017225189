"""
Preview surfaces: where assembled documents are delivered.

PreviewSurface          — protocol implemented by every surface
InMemoryPreviewSurface  — keeps delivered documents (embedding, tests)
PreviewBroadcaster      — fan-out to Server-Sent-Events listeners.  Each
                          connected client gets its own asyncio.Queue; when a
                          document is delivered every queue receives a copy.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderContext:
    """Per-cycle record of what was rendered.  Superseded by the next cycle."""

    content: str
    variables: dict
    timestamp: datetime
    sequence: int


class PreviewSurface(Protocol):
    async def deliver(self, document: str, context: RenderContext) -> None: ...


class InMemoryPreviewSurface:
    """Surface that records every delivered document."""

    def __init__(self) -> None:
        self.documents: list[str] = []
        self.contexts: list[RenderContext] = []

    async def deliver(self, document: str, context: RenderContext) -> None:
        self.documents.append(document)
        self.contexts.append(context)

    @property
    def latest(self) -> str | None:
        return self.documents[-1] if self.documents else None


class PreviewBroadcaster:
    """
    Fan-out surface for SSE listeners.

    Each subscriber gets an asyncio.Queue with a fixed capacity.  If the
    queue is full when a document arrives it is dropped for that slow
    consumer only (non-blocking).
    """

    EVENT_TYPE = "preview.updated"

    def __init__(self, max_queue_size: int = 100) -> None:
        self._queues: list[asyncio.Queue] = []
        self._lock: asyncio.Lock = asyncio.Lock()
        self._max_queue_size = max_queue_size
        self.latest: dict | None = None

    # ── Subscription ──────────────────────────────────────────────────────────

    async def subscribe(self) -> asyncio.Queue:
        """Create and register a new listener queue.

        The latest document, if any, is queued immediately so a new client
        does not start from a blank preview.  Call ``unsubscribe`` in a
        ``finally`` block.
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._max_queue_size)
        if self.latest is not None:
            queue.put_nowait(self.latest)
        async with self._lock:
            self._queues.append(queue)
        logger.debug("Preview subscriber added (total: %d)", len(self._queues))
        return queue

    async def unsubscribe(self, queue: asyncio.Queue) -> None:
        """Remove a listener queue."""
        async with self._lock:
            try:
                self._queues.remove(queue)
                logger.debug("Preview subscriber removed (total: %d)", len(self._queues))
            except ValueError:
                pass  # Already removed

    def subscriber_count(self) -> int:
        return len(self._queues)

    # ── Delivery ──────────────────────────────────────────────────────────────

    async def deliver(self, document: str, context: RenderContext) -> None:
        await self.publish(document, context)

    async def publish(self, document: str, context: RenderContext) -> int:
        """Fan a document out to all active listeners.

        Returns:
            Number of queues that received it.
        """
        payload = {
            "type": self.EVENT_TYPE,
            "data": {"sequence": context.sequence, "html": document},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        self.latest = payload
        async with self._lock:
            queues = list(self._queues)

        delivered = 0
        for queue in queues:
            try:
                queue.put_nowait(payload)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning("Preview queue full, dropping document %d for slow consumer", context.sequence)
        return delivered
