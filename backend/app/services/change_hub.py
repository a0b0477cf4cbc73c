from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from datetime import datetime, timezone

from anyio import from_thread
from fastapi import WebSocket

logger = logging.getLogger(__name__)


class TimetableChangeHub:
    """Websocket subscribers grouped by school.

    Subscribers receive ``entries.changed`` after every committed write and
    re-fetch; there is no incremental patch.
    """

    def __init__(self) -> None:
        self._connections: dict[str, set[WebSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def connect(self, school_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._connections[school_id].add(websocket)

    async def disconnect(self, school_id: str, websocket: WebSocket) -> None:
        async with self._lock:
            sockets = self._connections.get(school_id)
            if not sockets:
                return
            sockets.discard(websocket)
            if not sockets:
                self._connections.pop(school_id, None)

    def school_count(self) -> int:
        return len(self._connections)

    async def publish(self, school_id: str, payload: dict) -> None:
        async with self._lock:
            sockets = list(self._connections.get(school_id, set()))

        if not sockets:
            return

        stale: list[WebSocket] = []
        for websocket in sockets:
            try:
                await websocket.send_json(payload)
            except Exception:  # pragma: no cover - network/runtime dependent
                stale.append(websocket)

        if stale:
            async with self._lock:
                active = self._connections.get(school_id, set())
                for socket in stale:
                    active.discard(socket)
                if not active:
                    self._connections.pop(school_id, None)
            logger.debug("Removed %d stale timetable websocket(s) for school %s", len(stale), school_id)


change_hub = TimetableChangeHub()


def entries_changed_payload(school_id: str, section_id: str | None, action: str) -> dict:
    return {
        "event": "entries.changed",
        "school_id": school_id,
        "section_id": section_id,
        "action": action,
        "at": datetime.now(timezone.utc).isoformat(),
    }


def broadcast_entries_changed(school_id: str, section_id: str | None, action: str) -> None:
    """Called from sync request handlers after commit."""
    payload = entries_changed_payload(school_id, section_id, action)
    try:
        from_thread.run(change_hub.publish, school_id, payload)
    except Exception:  # pragma: no cover - runtime environment dependent
        logger.debug("Unable to push timetable change for school %s", school_id, exc_info=True)
