"""Realtime notification hub.

Tracks every live stream connection per user and fans payloads out to
them. Delivery is a bounded, non-blocking put onto each connection's
queue: a slow consumer loses frames (the inbox is still there for the next
poll) instead of stalling the broadcaster.

Registry mutations and the broadcast snapshot are guarded by one lock and
contain no await points, so they are atomic with respect to both the event
loop and worker threads. Payloads are handed to a connection's own loop
with ``call_soon_threadsafe`` when the broadcaster runs elsewhere.
"""

from __future__ import annotations

import asyncio
import itertools
import threading
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import structlog

logger = structlog.get_logger()

_CLOSED = object()


class ConnectionClosed(Exception):
    """Raised to the stream reader once its connection has been closed."""


class HubClosedError(RuntimeError):
    """The hub has been drained and accepts no new connections."""


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


@dataclass(eq=False)
class Connection:
    """A single live stream of one user (one tab or device)."""

    user_id: str
    queue: asyncio.Queue
    loop: asyncio.AbstractEventLoop
    conn_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    connected_at: float = field(default_factory=time.time)
    seq: int = 0
    messages_sent: int = 0
    messages_dropped: int = 0
    closed: bool = False

    def _call(self, fn: Callable[..., Any], *args: Any) -> bool:
        """Run ``fn`` on the connection's loop. False if that loop is gone."""
        if _running_loop() is self.loop:
            fn(*args)
            return True
        if self.loop.is_closed():
            return False
        try:
            self.loop.call_soon_threadsafe(fn, *args)
        except RuntimeError:
            return False
        return True

    def _put(self, payload: dict[str, Any]) -> None:
        if self.closed:
            return
        try:
            self.queue.put_nowait(payload)
            self.messages_sent += 1
        except asyncio.QueueFull:
            self.messages_dropped += 1
            logger.warning(
                "hub_send_dropped",
                conn_id=self.conn_id,
                user_id=self.user_id,
                dropped=self.messages_dropped,
            )

    def offer(self, payload: dict[str, Any]) -> bool:
        """Queue ``payload`` without blocking. False if the connection is closed."""
        if self.closed:
            return False
        return self._call(self._put, payload)

    def _signal_closed(self) -> None:
        # Make room so the reader always sees the close marker.
        while True:
            try:
                self.queue.put_nowait(_CLOSED)
                return
            except asyncio.QueueFull:
                try:
                    self.queue.get_nowait()
                except asyncio.QueueEmpty:
                    pass

    def close(self) -> None:
        """Mark closed and wake the reader. Idempotent."""
        if self.closed:
            return
        self.closed = True
        self._call(self._signal_closed)

    async def next_message(self, timeout: float | None = None) -> dict[str, Any] | None:
        """Wait for the next payload; None when ``timeout`` elapses first."""
        if self.closed and self.queue.empty():
            raise ConnectionClosed(self.conn_id)
        try:
            item = await asyncio.wait_for(self.queue.get(), timeout)
        except asyncio.TimeoutError:
            return None
        if item is _CLOSED:
            raise ConnectionClosed(self.conn_id)
        return item


class NotificationHub:
    """Registry of live connections keyed by user id."""

    def __init__(self, queue_size: int = 100, max_connections_per_user: int = 5) -> None:
        self.queue_size = queue_size
        self.max_connections_per_user = max_connections_per_user
        self._lock = threading.Lock()
        self._users: dict[str, dict[str, Connection]] = {}  # user_id -> {conn_id: conn}
        self._seq = itertools.count()
        self._closed = False

    @property
    def connection_count(self) -> int:
        with self._lock:
            return sum(len(conns) for conns in self._users.values())

    def connections_for(self, user_id: str) -> list[Connection]:
        with self._lock:
            return list(self._users.get(user_id, {}).values())

    def subscribe(self, user_id: str) -> tuple[Connection, Callable[[], None]]:
        """Register a new live connection for ``user_id``.

        Must be called from the event loop that will read the connection.
        Returns the connection and the function that unregisters it. When the
        user is already at the connection cap, their oldest connection is
        closed to make room.
        """
        loop = asyncio.get_running_loop()
        conn = Connection(user_id=user_id, queue=asyncio.Queue(maxsize=self.queue_size), loop=loop)
        evicted: Connection | None = None

        with self._lock:
            if self._closed:
                raise HubClosedError("Notification hub is shut down")
            conn.seq = next(self._seq)
            user_conns = self._users.setdefault(user_id, {})
            if self.max_connections_per_user and len(user_conns) >= self.max_connections_per_user:
                evicted = min(user_conns.values(), key=lambda c: c.seq)
                del user_conns[evicted.conn_id]
            user_conns[conn.conn_id] = conn

        if evicted is not None:
            evicted.close()
            logger.info("hub_connection_evicted", conn_id=evicted.conn_id, user_id=user_id)

        logger.info("hub_subscribed", conn_id=conn.conn_id, user_id=user_id)
        return conn, lambda: self.unsubscribe(conn)

    def unsubscribe(self, conn: Connection) -> bool:
        """Remove ``conn`` from the registry and close it. Idempotent."""
        with self._lock:
            user_conns = self._users.get(conn.user_id)
            removed = user_conns is not None and user_conns.pop(conn.conn_id, None) is not None
            if user_conns is not None and not user_conns:
                del self._users[conn.user_id]

        conn.close()
        if removed:
            logger.info("hub_unsubscribed", conn_id=conn.conn_id, user_id=conn.user_id)
        return removed

    def broadcast(self, user_id: str, payload: dict[str, Any]) -> int:
        """Deliver ``payload`` to every live connection of ``user_id``.

        Returns the number of connections the payload was handed to. A user
        with no live connection is not an error: they will see the
        notification on their next poll or reconnect.
        """
        with self._lock:
            targets = list(self._users.get(user_id, {}).values())

        sent = 0
        dead: list[Connection] = []
        for conn in targets:
            if conn.offer(payload):
                sent += 1
            else:
                dead.append(conn)

        for conn in dead:
            self.unsubscribe(conn)

        if sent:
            logger.debug("hub_broadcast", user_id=user_id, recipients=sent)
        return sent

    def drain(self) -> int:
        """Close every connection and refuse new ones (process shutdown)."""
        with self._lock:
            self._closed = True
            conns = [c for user_conns in self._users.values() for c in user_conns.values()]
            self._users.clear()

        for conn in conns:
            conn.close()
        logger.info("hub_drained", connections=len(conns))
        return len(conns)

    def get_stats(self) -> dict[str, Any]:
        """Get connection statistics."""
        with self._lock:
            conns = [c for user_conns in self._users.values() for c in user_conns.values()]
            return {
                "total_connections": len(conns),
                "unique_users": len(self._users),
                "messages_sent": sum(c.messages_sent for c in conns),
                "messages_dropped": sum(c.messages_dropped for c in conns),
            }
