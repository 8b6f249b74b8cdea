"""Server-Sent Events stream of a user's live notifications.

Frames are dicts consumed by sse-starlette's ``EventSourceResponse``:

- ``data: {"type": "connected", "timestamp": ...}`` once on open
- ``data: {"type": "notification", "data": {...}}`` per pushed notification
- ``event: ping`` keepalive every heartbeat interval without traffic
"""

from __future__ import annotations

import json
from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from typing import Any, Protocol

import structlog

from snipstream.realtime.hub import ConnectionClosed, NotificationHub

logger = structlog.get_logger()


class _Disconnectable(Protocol):
    async def is_disconnected(self) -> bool: ...


async def notification_stream(
    request: _Disconnectable,
    hub: NotificationHub,
    user_id: str,
    heartbeat_interval: float = 30.0,
) -> AsyncGenerator[dict[str, Any], None]:
    """Yield SSE frames until the client goes away or the hub closes the connection.

    The connection is unregistered in ``finally``, which runs on client
    disconnect, on cancellation by the response task and on write errors.
    """
    conn, unsubscribe = hub.subscribe(user_id)
    logger.info("sse_connected", conn_id=conn.conn_id, user_id=user_id)

    try:
        yield {
            "data": json.dumps({
                "type": "connected",
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }),
        }

        while True:
            if await request.is_disconnected():
                break
            try:
                payload = await conn.next_message(timeout=heartbeat_interval)
            except ConnectionClosed:
                break

            if payload is None:
                yield {"event": "ping", "data": json.dumps({"type": "keepalive"})}
                continue
            yield {"data": json.dumps(payload)}
    finally:
        unsubscribe()
        logger.info(
            "sse_disconnected",
            conn_id=conn.conn_id,
            user_id=user_id,
            messages_sent=conn.messages_sent,
            messages_dropped=conn.messages_dropped,
        )
