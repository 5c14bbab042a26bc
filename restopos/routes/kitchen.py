from fastapi import APIRouter, Request, WebSocket, WebSocketDisconnect
from starlette.responses import StreamingResponse
from typing import Optional
import asyncio
import json

from restopos.utils.pubsub import get_status, parse_types, register_queue, register_ws, unregister_queue, unregister_ws

router = APIRouter(prefix="/kitchen", tags=["Kitchen"])

# seconds between SSE comments that keep idle proxies from closing the stream
KEEPALIVE_SECONDS = 15


async def print_job_stream(request: Request, types=None):
    q = register_queue(types)
    try:
        while not await request.is_disconnected():
            try:
                job = await asyncio.wait_for(q.get(), timeout=KEEPALIVE_SECONDS)
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"
                continue
            yield f"event: {job.get('type', 'message')}\ndata: {json.dumps(job)}\n\n"
    finally:
        unregister_queue(q)


@router.get("/stream")
def stream(request: Request, types: Optional[str] = None):
    """Print jobs as Server-Sent Events.

    `types` narrows the feed, e.g. `?types=kitchen,void` for the kitchen
    printer and `?types=customer` for the counter.
    """
    return StreamingResponse(print_job_stream(request, parse_types(types)), media_type="text/event-stream")


@router.websocket("/ws")
async def print_job_socket(websocket: WebSocket, types: Optional[str] = None):
    await websocket.accept()
    register_ws(websocket, parse_types(types))
    try:
        # printers only listen; anything they send is ignored
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        unregister_ws(websocket)


@router.get("/status")
def status():
    return get_status()
