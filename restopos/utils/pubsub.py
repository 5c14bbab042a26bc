import asyncio
import logging
from typing import Any, Dict, FrozenSet, List, Optional, Tuple
from starlette.websockets import WebSocket

logger = logging.getLogger(__name__)

# Print-job fan-out. Each listener says which ticket types it prints
# ("kitchen", "customer", "void"); None means every type.
PRINT_JOB_TYPES = frozenset({"kitchen", "customer", "void"})

_subscribers: List[Tuple[asyncio.Queue, Optional[FrozenSet[str]]]] = []
_websockets: List[Tuple[WebSocket, Optional[FrozenSet[str]]]] = []


def parse_types(raw: Optional[str]) -> Optional[FrozenSet[str]]:
    """'kitchen,void' -> frozenset; empty means all types. Unknown names are dropped."""
    if not raw:
        return None
    wanted = frozenset(t.strip().lower() for t in raw.split(",") if t.strip())
    return (wanted & PRINT_JOB_TYPES) or None


def _wants(types: Optional[FrozenSet[str]], event: Any) -> bool:
    if types is None or not isinstance(event, dict):
        return True
    return event.get("type") in types


def register_queue(types: Optional[FrozenSet[str]] = None) -> asyncio.Queue:
    q = asyncio.Queue()
    _subscribers.append((q, types))
    return q


def unregister_queue(q: asyncio.Queue) -> None:
    _subscribers[:] = [(sub, t) for sub, t in _subscribers if sub is not q]


def register_ws(ws: WebSocket, types: Optional[FrozenSet[str]] = None) -> None:
    _websockets.append((ws, types))


def unregister_ws(ws: WebSocket) -> None:
    _websockets[:] = [(sock, t) for sock, t in _websockets if sock is not ws]


async def publish(event: Any) -> int:
    """Deliver a print job to every listener that prints its type.

    Returns how many listeners received it.
    """
    delivered = 0
    for q, types in list(_subscribers):
        if _wants(types, event):
            q.put_nowait(event)
            delivered += 1

    for ws, types in list(_websockets):
        if not _wants(types, event):
            continue
        try:
            await ws.send_json(event)
            delivered += 1
        except Exception as exc:
            # any send failure means the printer went away
            logger.info("dropping print websocket: %s", exc)
            unregister_ws(ws)

    if delivered == 0:
        logger.warning("print job %s for order %s had no listener",
                       event.get("type") if isinstance(event, dict) else type(event),
                       event.get("order_number") if isinstance(event, dict) else "-")
    return delivered


def get_status() -> Dict[str, Any]:
    """Listeners currently connected, per ticket type."""
    per_type = {t: 0 for t in sorted(PRINT_JOB_TYPES)}
    for _, types in _subscribers + _websockets:
        for t in (types or PRINT_JOB_TYPES):
            per_type[t] += 1
    return {"sse_queues": len(_subscribers), "websockets": len(_websockets), "by_type": per_type}
