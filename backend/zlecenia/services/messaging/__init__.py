# backend/zlecenia/services/messaging/__init__.py
"""
Real-time chat package.

Architecture:
- ConnectionRegistry keeps every live WebSocket connection per user
- CommandProcessor executes chat commands against the thread/message stores
- ThreadNotificationListener turns PostgreSQL NOTIFY on thread channels into
  new_message events for one connection
- ChatSession runs the receive, send and listener tasks of one connection
"""

from .chat_session import ChatSession
from .command_processor import CommandProcessor
from .connection_registry import (
    Connection,
    ConnectionRegistry,
    DeliveryOutcome,
    connection_registry,
    get_connection_registry,
)
from .events import ErrorCode, EventType
from .notification_bridge import NotificationSourceLost, ThreadNotificationListener

__all__ = [
    "ChatSession",
    "CommandProcessor",
    "Connection",
    "ConnectionRegistry",
    "DeliveryOutcome",
    "ErrorCode",
    "EventType",
    "NotificationSourceLost",
    "ThreadNotificationListener",
    "connection_registry",
    "get_connection_registry",
]
