# miles/routers/stream.py
"""Live alert feed — GET /stream (Server-Sent Events)."""

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse
from miles.services.live_stream import stream_frames

router = APIRouter()

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",   # stop nginx from buffering the stream
}


@router.get("/stream", summary="Live alert stream (SSE)")
async def stream_events(request: Request):
    """
    Emits `event: event` frames carrying the stored Event as JSON whenever a
    webhook is stored, plus `: keepalive` comments while idle.

        const es = new EventSource("/api/stream");
        es.addEventListener("event", (e) => console.log(JSON.parse(e.data)));
    """
    return StreamingResponse(stream_frames(request), media_type="text/event-stream", headers=SSE_HEADERS)
