"""Register-side buffer for orders taken while the server is unreachable.

Pending orders are kept in a JSON file so they survive a restart and are
replayed as one batch against ``POST /pos/sync`` once the connection is back.
Everything here runs on a single asyncio loop: ``enqueue`` may be called
while ``sync_now`` is waiting on the network, and such entries simply wait
for the next sync.
"""
import asyncio
import json
import logging
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

import requests

from restopos.core.config import settings
from restopos.core.errors import TransientError

logger = logging.getLogger(__name__)

Transport = Callable[[Dict[str, Any]], Awaitable[Dict[str, Any]]]


class RequestsTransport:
    """Posts a sync batch with `requests` on a worker thread."""

    def __init__(self, url: Optional[str] = None, timeout: Optional[float] = None, session: Optional[requests.Session] = None):
        self.url = url or settings.SYNC_URL
        self.timeout = timeout or settings.SYNC_TIMEOUT_SECONDS
        self.session = session or requests.Session()

    def post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = self.session.post(self.url, json=payload, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    async def __call__(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            return await asyncio.to_thread(self.post, payload)
        except requests.RequestException as exc:
            raise TransientError(f"sync request failed: {exc}") from exc
        except ValueError as exc:
            raise TransientError(f"sync response was not JSON: {exc}") from exc


class OfflineQueue:
    def __init__(
        self,
        storage_path: Optional[str] = None,
        transport: Optional[Transport] = None,
        debounce_seconds: Optional[float] = None,
        online: bool = True,
    ):
        self.storage_path = Path(storage_path or settings.OFFLINE_QUEUE_PATH)
        self.transport = transport or RequestsTransport()
        self.debounce_seconds = settings.OFFLINE_SYNC_DEBOUNCE_SECONDS if debounce_seconds is None else debounce_seconds
        self.is_online = online
        self.is_syncing = False
        self._queue: List[Dict[str, Any]] = []
        self._debounce_handle: Optional[asyncio.TimerHandle] = None
        self._sync_task: Optional[asyncio.Task] = None
        self.load()

    # -- storage -----------------------------------------------------------

    def load(self) -> None:
        if not self.storage_path.exists():
            self._queue = []
            return
        try:
            data = json.loads(self.storage_path.read_text(encoding='utf-8') or '[]')
        except (OSError, ValueError) as exc:
            logger.error("failed to load offline queue from %s: %s", self.storage_path, exc)
            data = []
        self._queue = [e for e in data if isinstance(e, dict)] if isinstance(data, list) else []

    def _save(self) -> None:
        self.storage_path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.storage_path.with_suffix(self.storage_path.suffix + '.tmp')
        tmp.write_text(json.dumps(self._queue), encoding='utf-8')
        os.replace(tmp, self.storage_path)

    def clear(self) -> None:
        self._queue = []
        if self.storage_path.exists():
            self.storage_path.unlink()

    # -- queue -------------------------------------------------------------

    @property
    def pending(self) -> List[Dict[str, Any]]:
        return list(self._queue)

    @property
    def count(self) -> int:
        return len(self._queue)

    @property
    def has_pending(self) -> bool:
        return bool(self._queue)

    @staticmethod
    def _with_uuid(order: Dict[str, Any]) -> Dict[str, Any]:
        # one id per order, shared by the live send and any later replay
        entry = dict(order)
        entry['uuid'] = str(entry.get('uuid') or entry.get('client_uuid') or uuid.uuid4())
        entry.pop('client_uuid', None)
        return entry

    def enqueue(self, order: Dict[str, Any]) -> Dict[str, Any]:
        """Store an order creation request; never rejects."""
        entry = self._with_uuid(order)
        entry['created_at'] = entry.get('created_at') or datetime.now(timezone.utc).isoformat()
        self._queue.append(entry)
        self._save()
        logger.info("order for %r saved offline; it will be sent when the connection is back", entry.get('customer_name'))
        return entry

    async def place_order(self, order: Dict[str, Any], send: Transport) -> Optional[Dict[str, Any]]:
        """Send an order live, or queue it when offline or the send fails.

        The order carries its uuid on the live send too, so a send that reached
        the server but lost its response is deduplicated when the queued copy
        is replayed. Returns the server response, or None when queued.
        """
        entry = self._with_uuid(order)
        entry.setdefault('created_at', datetime.now(timezone.utc).isoformat())
        if not self.is_online:
            self.enqueue(entry)
            return None
        try:
            return await send(entry)
        except TransientError as exc:
            logger.warning("live order failed, queueing offline: %s", exc.message)
            self.enqueue(entry)
            return None

    # -- sync --------------------------------------------------------------

    async def sync_now(self) -> bool:
        """Replay the queued orders as one batch.

        Entries the server accepted are dropped; entries it lists in
        ``failed`` and entries queued during the request stay for next time.
        """
        if not self.is_online or self.is_syncing or not self._queue:
            return False

        self.is_syncing = True
        batch = list(self._queue)
        try:
            response = await self.transport({'orders': batch})
            if not isinstance(response, dict):
                raise TransientError(f"sync response was not a JSON object: {type(response).__name__}")
            if response.get('status') != 'success':
                raise TransientError(response.get('message') or 'sync rejected by server')
        except TransientError as exc:
            logger.error("failed to sync offline orders, keeping them queued: %s", exc.message)
            return False
        finally:
            self.is_syncing = False

        failed = set(response.get('failed') or [])
        sent = {e['uuid'] for e in batch}
        self._queue = [e for e in self._queue if e['uuid'] not in sent or e['uuid'] in failed]
        if self._queue:
            self._save()
        else:
            self.clear()

        logger.info("%s offline order(s) uploaded", response.get('synced_count', 0))
        errors = response.get('errors') or []
        if errors:
            logger.warning("some offline orders were rejected and stay queued: %s", errors)
        return True

    def set_online(self, online: bool) -> None:
        """Connectivity change from the host (browser event, ping loop...)."""
        was_online, self.is_online = self.is_online, online
        if online and not was_online:
            logger.info("connection restored")
            if self._queue:
                self._schedule_sync()
        elif not online and was_online:
            logger.warning("connection lost; orders will be stored offline")
            self._cancel_scheduled_sync()

    def _schedule_sync(self) -> None:
        self._cancel_scheduled_sync()
        loop = asyncio.get_running_loop()
        self._debounce_handle = loop.call_later(self.debounce_seconds, self._start_sync)

    def _cancel_scheduled_sync(self) -> None:
        # only the pending timer is cancelled; a sync already on the wire finishes
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None

    def _start_sync(self) -> None:
        self._debounce_handle = None
        self._sync_task = asyncio.get_running_loop().create_task(self.sync_now())

    async def start(self) -> None:
        """Sync right away when there is a backlog and we are online."""
        self.load()
        if self.is_online and self._queue:
            await self.sync_now()

    async def wait_idle(self) -> None:
        """Wait for a scheduled or running background sync to finish."""
        if self._sync_task is not None:
            await self._sync_task

    def close(self) -> None:
        self._cancel_scheduled_sync()
