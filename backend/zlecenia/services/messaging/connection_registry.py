# backend/zlecenia/services/messaging/connection_registry.py
"""
In-memory registry of live chat connections.

Design decisions:
- One entry per user holding every open connection of that user
  (several tabs/devices are allowed)
- A single threading.Lock guards structural changes and the copy-out of a
  user's connections; pushes into connection queues happen outside it
- Each connection owns a bounded asyncio.Queue; a full or closed queue drops
  the event for that connection only
- Pushing is safe from any thread: off-loop callers are scheduled onto the
  connection's loop with call_soon_threadsafe
"""

from __future__ import annotations

import asyncio
from collections import deque
from contextlib import suppress
from dataclasses import dataclass, field
from enum import Enum
import logging
import threading
from typing import Any, Callable, Deque, Dict, List, Optional, Set
import uuid

from ...core.config import settings
from ...monitoring.prometheus_metrics import prometheus_metrics
from .events import new_message_id

logger = logging.getLogger(__name__)

Event = Dict[str, Any]


class DeliveryOutcome(str, Enum):
    DELIVERED = "delivered"
    CLOSED = "closed"
    FULL = "full"
    DUPLICATE = "duplicate"


@dataclass(eq=False)
class Connection:
    """
    One live WebSocket connection.

    ``queue`` carries outbound events to the connection's send loop. A
    ``None`` item tells the send loop to stop.
    """

    user_id: uuid.UUID
    queue: "asyncio.Queue[Optional[Event]]"
    loop: asyncio.AbstractEventLoop
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    closed: bool = False
    dedup_window: int = 0
    watch_hook: Optional[Callable[[uuid.UUID], None]] = None
    _recent_ids: Deque[str] = field(default_factory=deque, repr=False)
    _recent_set: Set[str] = field(default_factory=set, repr=False)

    @classmethod
    def open(
        cls,
        user_id: uuid.UUID,
        *,
        maxsize: Optional[int] = None,
        dedup_window: Optional[int] = None,
    ) -> "Connection":
        """Create a connection bound to the running event loop."""
        return cls(
            user_id=user_id,
            queue=asyncio.Queue(maxsize=maxsize or settings.chat_outbound_queue_size),
            loop=asyncio.get_running_loop(),
            dedup_window=settings.chat_dedup_window if dedup_window is None else dedup_window,
        )

    def _on_own_loop(self) -> bool:
        try:
            return asyncio.get_running_loop() is self.loop
        except RuntimeError:
            return False

    def _remember(self, message_id: str) -> bool:
        """Record an id in the dedup window; False if it was already there."""
        if self.dedup_window <= 0:
            return True
        if message_id in self._recent_set:
            return False
        self._recent_ids.append(message_id)
        self._recent_set.add(message_id)
        while len(self._recent_ids) > self.dedup_window:
            self._recent_set.discard(self._recent_ids.popleft())
        return True

    def _seen(self, event: Event) -> bool:
        message_id = new_message_id(event)
        if message_id is None:
            return False
        return not self._remember(message_id)

    def mark_seen(self, message_id: uuid.UUID) -> None:
        """Suppress a later new_message for a message this connection already knows about."""
        self._remember(str(message_id))

    def _put(self, event: Event, scheduled: bool = False) -> DeliveryOutcome:
        if self.closed:
            outcome = DeliveryOutcome.CLOSED
        elif self._seen(event):
            outcome = DeliveryOutcome.DUPLICATE
        else:
            try:
                self.queue.put_nowait(event)
                outcome = DeliveryOutcome.DELIVERED
            except asyncio.QueueFull:
                outcome = DeliveryOutcome.FULL
        if scheduled and outcome is not DeliveryOutcome.DELIVERED:
            _log_skip(self, event, outcome)
        return outcome

    def push(self, event: Event) -> DeliveryOutcome:
        """
        Queue an event for this connection without blocking.

        Off-loop pushes are scheduled and reported as delivered; a drop that
        happens once the callback runs is logged there.
        """
        if self.closed:
            return DeliveryOutcome.CLOSED
        if self._on_own_loop():
            return self._put(event)
        try:
            self.loop.call_soon_threadsafe(self._put, event, True)
        except RuntimeError:
            # Loop already closed
            self.closed = True
            return DeliveryOutcome.CLOSED
        return DeliveryOutcome.DELIVERED

    def watch(self, thread_id: uuid.UUID) -> None:
        if self.watch_hook is not None and not self.closed:
            self.watch_hook(thread_id)

    def close(self) -> None:
        """Mark closed and wake the send loop. Safe to call more than once."""
        if self.closed:
            return
        self.closed = True

        def _wake() -> None:
            # A full queue still wakes the send loop, which then sees the closed flag
            with suppress(asyncio.QueueFull):
                self.queue.put_nowait(None)

        if self._on_own_loop():
            _wake()
        elif not self.loop.is_closed():
            self.loop.call_soon_threadsafe(_wake)


def _log_skip(connection: Connection, event: Event, outcome: DeliveryOutcome) -> None:
    if outcome is DeliveryOutcome.DUPLICATE:
        logger.debug(
            "[REGISTRY] Dropped duplicate event",
            extra={"connection_id": str(connection.id), "user_id": str(connection.user_id)},
        )
        return
    logger.warning(
        f"[REGISTRY] Skipped {event.get('type')} for connection: {outcome.value}",
        extra={"connection_id": str(connection.id), "user_id": str(connection.user_id)},
    )
    prometheus_metrics.inc_chat_delivery_failure(outcome.value)


class ConnectionRegistry:
    """Maps user ids to their live connections."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._connections: Dict[uuid.UUID, Dict[uuid.UUID, Connection]] = {}

    def register(self, user_id: uuid.UUID, connection: Connection) -> None:
        with self._lock:
            self._connections.setdefault(user_id, {})[connection.id] = connection
            total = self._count_locked()
        prometheus_metrics.set_chat_connections(total)
        logger.info(
            "[REGISTRY] Connection registered",
            extra={"user_id": str(user_id), "connection_id": str(connection.id)},
        )

    def unregister(self, user_id: uuid.UUID, connection_id: uuid.UUID) -> Optional[Connection]:
        """Remove one connection; the user's entry disappears with its last connection."""
        with self._lock:
            user_connections = self._connections.get(user_id)
            if not user_connections:
                return None
            connection = user_connections.pop(connection_id, None)
            if not user_connections:
                del self._connections[user_id]
            total = self._count_locked()
        prometheus_metrics.set_chat_connections(total)
        if connection is not None:
            logger.info(
                "[REGISTRY] Connection unregistered",
                extra={"user_id": str(user_id), "connection_id": str(connection_id)},
            )
        return connection

    def connections_for(self, user_id: uuid.UUID) -> List[Connection]:
        with self._lock:
            return list(self._connections.get(user_id, {}).values())

    def is_online(self, user_id: uuid.UUID) -> bool:
        with self._lock:
            return bool(self._connections.get(user_id))

    def deliver(self, user_id: uuid.UUID, event: Event) -> int:
        """
        Push an event to every connection of a user.

        Returns the number of connections the event was handed to. A user
        with no connections gets nothing and that is not an error.
        """
        delivered = 0
        for connection in self.connections_for(user_id):
            outcome = connection.push(event)
            if outcome is DeliveryOutcome.DELIVERED:
                delivered += 1
            else:
                _log_skip(connection, event, outcome)
        prometheus_metrics.inc_chat_delivered(str(event.get("type")), delivered)
        return delivered

    def watch_thread(self, user_id: uuid.UUID, thread_id: uuid.UUID) -> None:
        """Ask every listener of a user to subscribe to a thread."""
        for connection in self.connections_for(user_id):
            connection.watch(thread_id)

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {"users": len(self._connections), "connections": self._count_locked()}

    def _count_locked(self) -> int:
        return sum(len(conns) for conns in self._connections.values())

    def clear(self) -> None:
        with self._lock:
            self._connections.clear()
        prometheus_metrics.set_chat_connections(0)


# Process-wide registry shared by the WebSocket route and the command processor
connection_registry = ConnectionRegistry()


def get_connection_registry() -> ConnectionRegistry:
    return connection_registry
