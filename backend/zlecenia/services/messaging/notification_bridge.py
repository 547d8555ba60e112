# backend/zlecenia/services/messaging/notification_bridge.py
"""
Bridge from PostgreSQL LISTEN/NOTIFY to live chat connections.

Each chat connection runs one ThreadNotificationListener. It opens a dedicated
asyncpg connection (LISTEN does not survive transaction poolers), listens on
the channel of every thread the user takes part in, and turns each
notification into a ``new_message`` event for that connection.

Design decisions:
- asyncpg invokes listener callbacks on the event loop; callbacks only put
  items on an internal queue, the run loop does the work
- The run loop waits with a short timeout; a timeout only means nothing
  arrived and is followed by a liveness check of the asyncpg connection
- A terminated asyncpg connection raises NotificationSourceLost, which ends
  the run loop and with it the chat connection
- Threads created after the listener starts are added through ``watch``;
  requests made before LISTEN is open wait in the inbox
"""

import asyncio
from datetime import datetime
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Set, Union
import uuid

import asyncpg
from pydantic import BaseModel, ValidationError

from ...core.config import settings
from ...database import get_db_session
from ...monitoring.prometheus_metrics import prometheus_metrics
from ...repositories.factory import RepositoryFactory
from ...repositories.message_repository import channel_for_thread
from ...schemas.chat import MessageInfo
from .connection_registry import Connection, DeliveryOutcome
from .events import build_new_message_event

logger = logging.getLogger(__name__)


class NotificationSourceLost(Exception):
    """The LISTEN connection went away; the chat connection cannot stay consistent."""


class NotificationPayload(BaseModel):
    message_id: uuid.UUID
    thread_id: uuid.UUID
    sender_id: uuid.UUID
    content: str
    sent_at: datetime


class _WatchRequest:
    __slots__ = ("thread_id",)

    def __init__(self, thread_id: uuid.UUID) -> None:
        self.thread_id = thread_id


_TERMINATED = object()

InboxItem = Union[str, _WatchRequest, object]


def load_thread_ids(user_id: uuid.UUID) -> List[uuid.UUID]:
    with get_db_session() as db:
        return RepositoryFactory.create_thread_repository(db).thread_ids_for_user(user_id)


def load_username(user_id: uuid.UUID) -> Optional[str]:
    with get_db_session() as db:
        return RepositoryFactory.create_user_repository(db).get_username(user_id)


class ThreadNotificationListener:
    """
    LISTEN loop for one chat connection.

    The asyncpg ``connect`` callable and the two lookups are injectable so the
    loop can run against a fake notification source.
    """

    def __init__(
        self,
        connection: Connection,
        *,
        dsn: Optional[str] = None,
        poll_interval: Optional[float] = None,
        connect: Callable[[str], Awaitable[Any]] = asyncpg.connect,
        thread_ids_loader: Callable[[uuid.UUID], Iterable[uuid.UUID]] = load_thread_ids,
        username_loader: Callable[[uuid.UUID], Optional[str]] = load_username,
    ) -> None:
        self.connection = connection
        self.dsn = dsn or settings.listen_database_url
        self.poll_interval = poll_interval or settings.chat_listener_poll_interval
        self._connect = connect
        self._thread_ids_loader = thread_ids_loader
        self._username_loader = username_loader
        self._pg: Optional[Any] = None
        self._inbox: "asyncio.Queue[InboxItem]" = asyncio.Queue()
        self._channels: Set[str] = set()
        self._usernames: Dict[uuid.UUID, str] = {}

    @property
    def channels(self) -> Set[str]:
        return set(self._channels)

    def _log_extra(self, **extra: Any) -> Dict[str, Any]:
        return {
            "user_id": str(self.connection.user_id),
            "connection_id": str(self.connection.id),
            **extra,
        }

    # asyncpg callbacks (run on the event loop)

    def _on_notification(self, pg_conn: Any, pid: int, channel: str, payload: str) -> None:
        self._inbox.put_nowait(payload)

    def _on_termination(self, pg_conn: Any) -> None:
        self._inbox.put_nowait(_TERMINATED)

    def watch(self, thread_id: uuid.UUID) -> None:
        """Start listening on a thread created after this listener started."""
        self._inbox.put_nowait(_WatchRequest(thread_id))

    async def _listen(self, thread_id: uuid.UUID) -> None:
        channel = channel_for_thread(thread_id)
        if channel in self._channels or self._pg is None:
            return
        await self._pg.add_listener(channel, self._on_notification)
        self._channels.add(channel)
        logger.debug("[NOTIFY] Listening", extra=self._log_extra(channel=channel))

    async def run(self) -> None:
        """
        Listen until cancelled or until the notification source is lost.

        Raises NotificationSourceLost when the asyncpg connection terminates.
        """
        # Watch requests made during startup wait in the inbox until LISTEN is open
        self.connection.watch_hook = self.watch
        try:
            thread_ids = await asyncio.to_thread(self._thread_ids_loader, self.connection.user_id)
            try:
                self._pg = await self._connect(self.dsn)
            except (OSError, asyncpg.PostgresError) as e:
                raise NotificationSourceLost(f"Could not open LISTEN connection: {e}") from e

            self._pg.add_termination_listener(self._on_termination)
            for thread_id in thread_ids:
                await self._listen(thread_id)
            logger.info(
                "[NOTIFY] Listener started",
                extra=self._log_extra(channels=len(self._channels)),
            )

            while True:
                try:
                    item = await asyncio.wait_for(self._inbox.get(), timeout=self.poll_interval)
                except asyncio.TimeoutError:
                    if self._pg.is_closed():
                        raise NotificationSourceLost("LISTEN connection closed")
                    continue

                if item is _TERMINATED:
                    raise NotificationSourceLost("LISTEN connection terminated")
                if isinstance(item, _WatchRequest):
                    await self._listen(item.thread_id)
                    continue
                await self._handle_payload(str(item))
        finally:
            self.connection.watch_hook = None
            await self._close()

    async def _handle_payload(self, raw: str) -> None:
        try:
            payload = NotificationPayload.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning(
                "[NOTIFY] Dropping malformed notification",
                extra=self._log_extra(error=str(e)),
            )
            prometheus_metrics.inc_chat_notification("malformed")
            return

        sender_name = await self._sender_name(payload.sender_id)
        message = MessageInfo(
            id=payload.message_id,
            thread_id=payload.thread_id,
            sender_id=payload.sender_id,
            sender_name=sender_name,
            content=payload.content,
            sent_at=payload.sent_at,
        )
        outcome = self.connection.push(build_new_message_event(message))
        prometheus_metrics.inc_chat_notification(outcome.value)
        if outcome is DeliveryOutcome.DELIVERED:
            prometheus_metrics.inc_chat_delivered("new_message")
        logger.debug(
            f"[NOTIFY] Notification {outcome.value}",
            extra=self._log_extra(message_id=str(payload.message_id)),
        )

    async def _sender_name(self, sender_id: uuid.UUID) -> str:
        cached = self._usernames.get(sender_id)
        if cached is not None:
            return cached
        name = await asyncio.to_thread(self._username_loader, sender_id)
        if name is None:
            return ""
        self._usernames[sender_id] = name
        return name

    async def _close(self) -> None:
        pg, self._pg = self._pg, None
        if pg is None:
            return
        if not pg.is_closed():
            await pg.close()
        self._channels.clear()
        logger.info("[NOTIFY] Listener stopped", extra=self._log_extra())
