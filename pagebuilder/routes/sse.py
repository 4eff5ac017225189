"""
Live preview stream (Server-Sent Events)

GET /api/v1/page-builder/preview/stream

Event format:
    data: {"type": "preview.updated", "data": {"sequence": 3, "html": "..."}, "timestamp": "..."}\n\n

Keepalive comment (every sse_keepalive_interval seconds while idle):
    : keepalive\n\n
"""

import asyncio
import json
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from pagebuilder.config import settings
from pagebuilder.preview.surface import PreviewBroadcaster
from pagebuilder.runtime import PageBuilderRuntime, get_runtime

router = APIRouter(tags=["Live Preview"])
logger = logging.getLogger(__name__)


async def _event_stream(request: Request, broadcaster: PreviewBroadcaster, keepalive: float | None = None):
    """Yield SSE-formatted preview documents until the client disconnects."""
    interval = float(settings.sse_keepalive_interval if keepalive is None else keepalive)
    queue = await broadcaster.subscribe()
    try:
        connected_payload = json.dumps(
            {
                "type": "connected",
                "data": {},
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        )
        yield f"data: {connected_payload}\n\n"

        while True:
            if await request.is_disconnected():
                logger.debug("Preview stream client disconnected")
                break

            try:
                event = await asyncio.wait_for(queue.get(), timeout=interval)
                yield f"data: {json.dumps(event)}\n\n"
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"

    finally:
        await broadcaster.unsubscribe(queue)


@router.get("/preview/stream")
async def preview_stream(
    request: Request,
    runtime: PageBuilderRuntime = Depends(get_runtime),
) -> StreamingResponse:
    """
    Stream delivered preview documents.

    A new subscriber first receives the latest document, if any.

    **Client-side example** (JavaScript):
    ```javascript
    const evtSrc = new EventSource('/api/v1/page-builder/preview/stream');
    evtSrc.onmessage = (e) => {
        const event = JSON.parse(e.data);
        if (event.type === 'preview.updated') iframe.srcdoc = event.data.html;
    };
    ```
    """
    return StreamingResponse(
        _event_stream(request, runtime.broadcaster),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        },
    )
