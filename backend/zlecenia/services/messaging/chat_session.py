# backend/zlecenia/services/messaging/chat_session.py
"""
Lifecycle of one authenticated chat WebSocket.

Three tasks run per connection:
- receive loop: reads text frames and hands them to the command processor
- send loop: drains the connection queue into the socket
- notification listener: LISTEN/NOTIFY bridge (when enabled)

Whichever finishes first (client disconnect, failed send, lost notification
source) ends the session: the others are cancelled, the connection is
unregistered and the socket is closed.
"""

import asyncio
import logging
from typing import Callable, List, Optional
import uuid

from starlette.websockets import WebSocket, WebSocketState

from ...core.config import settings
from ...core.request_context import reset_request_id, reset_user_id, set_request_id, set_user_id
from .command_processor import CommandProcessor
from .connection_registry import Connection, ConnectionRegistry, get_connection_registry
from .events import ErrorCode, build_error_event
from .notification_bridge import NotificationSourceLost, ThreadNotificationListener

logger = logging.getLogger(__name__)

ListenerFactory = Callable[[Connection], ThreadNotificationListener]


class ChatSession:
    def __init__(
        self,
        websocket: WebSocket,
        user_id: uuid.UUID,
        *,
        registry: Optional[ConnectionRegistry] = None,
        processor: Optional[CommandProcessor] = None,
        notifications_enabled: Optional[bool] = None,
        listener_factory: ListenerFactory = ThreadNotificationListener,
    ) -> None:
        self.websocket = websocket
        self.user_id = user_id
        self.registry = registry or get_connection_registry()
        self.processor = processor or CommandProcessor(self.registry)
        self.notifications_enabled = (
            settings.chat_notifications_enabled
            if notifications_enabled is None
            else notifications_enabled
        )
        self.listener_factory = listener_factory

    async def run(self) -> None:
        """Serve the socket until one of the connection tasks ends. Expects an accepted socket."""
        connection = Connection.open(self.user_id)
        request_token = set_request_id(f"ws-{connection.id.hex[:12]}")
        user_token = set_user_id(str(self.user_id))
        self.registry.register(self.user_id, connection)
        logger.info("[CHAT-WS] Connection opened", extra={"user_id": str(self.user_id)})

        tasks: List["asyncio.Task[None]"] = [
            asyncio.create_task(self._receive_loop(connection), name="chat-receive"),
            asyncio.create_task(self._send_loop(connection), name="chat-send"),
        ]
        if self.notifications_enabled:
            listener = self.listener_factory(connection)
            tasks.append(asyncio.create_task(listener.run(), name="chat-notify"))

        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                self._report(task)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            self.registry.unregister(self.user_id, connection.id)
            connection.close()
            await self._close_socket()
            logger.info("[CHAT-WS] Connection closed", extra={"user_id": str(self.user_id)})
            reset_user_id(user_token)
            reset_request_id(request_token)

    def _report(self, task: "asyncio.Task[None]") -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is None:
            logger.debug(f"[CHAT-WS] {task.get_name()} finished")
        elif isinstance(error, NotificationSourceLost):
            logger.warning(
                f"[CHAT-WS] Notification source lost: {error}",
                extra={"user_id": str(self.user_id)},
            )
        else:
            logger.error(
                f"[CHAT-WS] {task.get_name()} failed: {error}",
                exc_info=error,
                extra={"user_id": str(self.user_id)},
            )

    async def _receive_loop(self, connection: Connection) -> None:
        while True:
            message = await self.websocket.receive()
            if message["type"] == "websocket.disconnect":
                return
            text = message.get("text")
            if text is None:
                connection.push(
                    build_error_event("Only text frames are supported", ErrorCode.VALIDATION_ERROR)
                )
                continue
            await self.processor.handle_raw(connection, text)

    async def _send_loop(self, connection: Connection) -> None:
        while True:
            event = await connection.queue.get()
            if event is None or connection.closed:
                return
            await self.websocket.send_json(event)

    async def _close_socket(self) -> None:
        if (
            self.websocket.application_state == WebSocketState.CONNECTED
            and self.websocket.client_state == WebSocketState.CONNECTED
        ):
            await self.websocket.close()
