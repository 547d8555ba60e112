# backend/zlecenia/services/messaging/command_processor.py
"""
Executes chat commands received over a WebSocket.

Every command runs against a short-lived database session on a worker thread
(the stores are synchronous SQLAlchemy). Replies go to the calling connection
only; events for other users go through the connection registry.

A failing command never ends the connection: it becomes an ``error`` event
for the caller. Domain errors keep their message; anything else is logged
and reported as a generic internal error.
"""

import asyncio
import json
import logging
from typing import Any, Callable, ContextManager, Dict, List, Optional, Tuple, TypeVar

from pydantic import ValidationError
from sqlalchemy.orm import Session

from ...core.exceptions import DomainException, ServiceException
from ...database import get_db_session
from ...monitoring.prometheus_metrics import prometheus_metrics
from ...schemas.chat import (
    ChatCommand,
    CreateThreadCommand,
    GetMessagesCommand,
    GetThreadsCommand,
    MessageInfo,
    SendMessageCommand,
    ThreadInfo,
    chat_command_adapter,
)
from ..message_service import MessageService, SentMessage
from ..thread_service import ThreadService
from .connection_registry import Connection, ConnectionRegistry, get_connection_registry
from .events import (
    INTERNAL_ERROR_MESSAGE,
    ErrorCode,
    build_error_event,
    build_message_sent_event,
    build_messages_list_event,
    build_new_message_event,
    build_thread_created_event,
    build_threads_list_event,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

COMMAND_NAMES = frozenset({"create_thread", "send_message", "get_threads", "get_messages"})


def _command_label(data: Any) -> str:
    """Metric label for a command that failed validation; unknown names collapse to one series."""
    cmd = data.get("cmd") if isinstance(data, dict) else None
    if isinstance(cmd, str) and cmd in COMMAND_NAMES:
        return cmd
    return "invalid"


def _validation_message(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(piece) for piece in item.get("loc", ()))
        parts.append(f"{location}: {item.get('msg')}" if location else str(item.get("msg")))
    return "; ".join(parts) or "Invalid command"


class CommandProcessor:
    def __init__(
        self,
        registry: Optional[ConnectionRegistry] = None,
        session_factory: Callable[[], ContextManager[Session]] = get_db_session,
    ) -> None:
        self.registry = registry or get_connection_registry()
        self._session_factory = session_factory

    async def _db(self, work: Callable[[Session], T]) -> T:
        """Run store work in its own session on a worker thread."""

        def run() -> T:
            with self._session_factory() as db:
                return work(db)

        return await asyncio.to_thread(run)

    def _reply(self, connection: Connection, event: Dict[str, Any]) -> None:
        connection.push(event)

    def _reply_error(self, connection: Connection, message: str, code: ErrorCode) -> None:
        self._reply(connection, build_error_event(message, code))

    async def handle_raw(self, connection: Connection, raw: str) -> None:
        """Parse one inbound text frame and execute it."""
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            prometheus_metrics.inc_chat_command("invalid", "validation_error")
            self._reply_error(connection, "Invalid JSON", ErrorCode.VALIDATION_ERROR)
            return

        try:
            command = chat_command_adapter.validate_python(data)
        except ValidationError as e:
            prometheus_metrics.inc_chat_command(_command_label(data), "validation_error")
            self._reply_error(connection, _validation_message(e), ErrorCode.VALIDATION_ERROR)
            return

        await self.execute(connection, command)

    async def execute(self, connection: Connection, command: ChatCommand) -> None:
        cmd = command.cmd
        try:
            if isinstance(command, CreateThreadCommand):
                await self._create_thread(connection, command)
            elif isinstance(command, SendMessageCommand):
                await self._send_message(connection, command)
            elif isinstance(command, GetThreadsCommand):
                await self._get_threads(connection)
            elif isinstance(command, GetMessagesCommand):
                await self._get_messages(connection, command)
        except ServiceException as e:
            self._internal_error(connection, cmd, e)
            return
        except DomainException as e:
            prometheus_metrics.inc_chat_command(cmd, e.event_code)
            logger.info(
                f"[CHAT-WS] Command {cmd} rejected: {e.code}",
                extra={"user_id": str(connection.user_id), "cmd": cmd},
            )
            self._reply_error(connection, e.message, ErrorCode(e.event_code))
            return
        except Exception as e:
            self._internal_error(connection, cmd, e)
            return
        prometheus_metrics.inc_chat_command(cmd, "ok")

    def _internal_error(self, connection: Connection, cmd: str, error: Exception) -> None:
        prometheus_metrics.inc_chat_command(cmd, "internal_error")
        logger.error(
            f"[CHAT-WS] Command {cmd} failed: {error}",
            exc_info=error,
            extra={"user_id": str(connection.user_id), "cmd": cmd},
        )
        self._reply_error(connection, INTERNAL_ERROR_MESSAGE, ErrorCode.INTERNAL_ERROR)

    async def _create_thread(self, connection: Connection, command: CreateThreadCommand) -> None:
        user_id = connection.user_id
        other_id = command.other_user_id

        def work(db: Session) -> Tuple[ThreadInfo, List[ThreadInfo]]:
            service = ThreadService(db)
            thread = service.create_or_get(command.post_id, user_id, other_id)
            return service.get_info(thread.id, user_id), service.list_for_user(other_id)

        thread, other_threads = await self._db(work)

        self.registry.deliver(other_id, build_threads_list_event(other_threads))
        self.registry.watch_thread(user_id, thread.id)
        self.registry.watch_thread(other_id, thread.id)
        self._reply(connection, build_thread_created_event(thread))

    async def _send_message(self, connection: Connection, command: SendMessageCommand) -> None:
        user_id = connection.user_id

        def work(db: Session) -> SentMessage:
            return MessageService(db).append(command.thread_id, user_id, command.content)

        sent = await self._db(work)

        # message_sent already covers this connection
        connection.mark_seen(sent.message.id)
        self.registry.deliver(sent.recipient_id, build_new_message_event(sent.message))
        self._reply(connection, build_message_sent_event(sent.message))

    async def _get_threads(self, connection: Connection) -> None:
        user_id = connection.user_id
        threads = await self._db(lambda db: ThreadService(db).list_for_user(user_id))
        self._reply(connection, build_threads_list_event(threads))

    async def _get_messages(self, connection: Connection, command: GetMessagesCommand) -> None:
        user_id = connection.user_id

        def work(db: Session) -> List[MessageInfo]:
            return MessageService(db).list(
                command.thread_id, user_id, limit=command.limit, offset=command.offset
            )

        messages = await self._db(work)
        self._reply(connection, build_messages_list_event(messages))
