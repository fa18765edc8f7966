# casedesk/routes/toast_routes.py
"""
Toast Routes
- Recent toasts
- Real-time SSE stream
"""

import asyncio
import json
import logging

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

logger = logging.getLogger("casedesk.toasts")

router = APIRouter(prefix="/api/toasts", tags=["toasts"])

HEARTBEAT_SECONDS = 30.0


@router.get("/recent")
def api_recent_toasts(request: Request, limit: int = 20):
    channel = request.app.state.toasts
    return {"toasts": [toast.to_dict() for toast in channel.recent(limit)]}


@router.get("/stream")
async def toast_stream(request: Request):
    """Server-Sent Events stream of toasts as they are raised"""
    channel = request.app.state.toasts

    async def event_generator():
        queue = channel.add_listener()
        try:
            yield 'data: {"type": "connected"}\n\n'

            while True:
                if await request.is_disconnected():
                    break
                try:
                    toast = await asyncio.wait_for(queue.get(), timeout=HEARTBEAT_SECONDS)
                    yield f"data: {json.dumps(toast.to_dict())}\n\n"
                except asyncio.TimeoutError:
                    yield 'data: {"type": "heartbeat"}\n\n'
        finally:
            channel.remove_listener(queue)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        },
    )
