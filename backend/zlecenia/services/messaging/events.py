# backend/zlecenia/services/messaging/events.py
"""
Chat event type definitions and builders.

Every event is a JSON-ready dict tagged by ``type``:

    {"type": "new_message", "message": {...}}
    {"type": "error", "message": "...", "code": "not_found"}
"""

from enum import Enum
from typing import Any, Dict, Iterable, Optional

from ...schemas.chat import (
    ErrorEvent,
    MessageInfo,
    MessagesListEvent,
    MessageSentEvent,
    NewMessageEvent,
    ThreadCreatedEvent,
    ThreadInfo,
    ThreadsListEvent,
)


class EventType(str, Enum):
    """Valid chat event types."""

    THREAD_CREATED = "thread_created"
    MESSAGE_SENT = "message_sent"
    THREADS_LIST = "threads_list"
    MESSAGES_LIST = "messages_list"
    NEW_MESSAGE = "new_message"
    ERROR = "error"


class ErrorCode(str, Enum):
    """``code`` values carried by error events."""

    UNAUTHORIZED = "unauthorized"
    ACCESS_DENIED = "access_denied"
    NOT_FOUND = "not_found"
    VALIDATION_ERROR = "validation_error"
    CONFLICT = "conflict"
    INTERNAL_ERROR = "internal_error"


INTERNAL_ERROR_MESSAGE = "Internal server error"


def build_thread_created_event(thread: ThreadInfo) -> Dict[str, Any]:
    return ThreadCreatedEvent(thread=thread).model_dump(mode="json")


def build_message_sent_event(message: MessageInfo) -> Dict[str, Any]:
    return MessageSentEvent(message=message).model_dump(mode="json")


def build_threads_list_event(threads: Iterable[ThreadInfo]) -> Dict[str, Any]:
    return ThreadsListEvent(threads=list(threads)).model_dump(mode="json")


def build_messages_list_event(messages: Iterable[MessageInfo]) -> Dict[str, Any]:
    return MessagesListEvent(messages=list(messages)).model_dump(mode="json")


def build_new_message_event(message: MessageInfo) -> Dict[str, Any]:
    return NewMessageEvent(message=message).model_dump(mode="json")


def build_error_event(message: str, code: Optional[ErrorCode] = None) -> Dict[str, Any]:
    return ErrorEvent(message=message, code=code.value if code else None).model_dump(mode="json")


def new_message_id(event: Dict[str, Any]) -> Optional[str]:
    """Message id of a new_message event, None for any other event."""
    if event.get("type") != EventType.NEW_MESSAGE.value:
        return None
    message = event.get("message") or {}
    value = message.get("id")
    return str(value) if value is not None else None
