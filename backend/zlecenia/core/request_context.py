from __future__ import annotations

from contextvars import ContextVar, Token
import logging
from typing import Optional

_request_id_var: ContextVar[str] = ContextVar("request_id", default="")
_user_id_var: ContextVar[str] = ContextVar("user_id", default="")


def set_request_id(request_id: Optional[str]) -> Token[str]:
    return _request_id_var.set(request_id or "")


def reset_request_id(token: Token[str]) -> None:
    _request_id_var.reset(token)


def get_request_id(default: Optional[str] = None) -> Optional[str]:
    value = _request_id_var.get()
    return value if value else default


def get_request_id_value(default: str = "no-request") -> str:
    value = _request_id_var.get()
    return value if value else default


def set_user_id(user_id: Optional[str]) -> Token[str]:
    return _user_id_var.set(user_id or "")


def reset_user_id(token: Token[str]) -> None:
    _user_id_var.reset(token)


def get_user_id_value(default: str = "anonymous") -> str:
    value = _user_id_var.get()
    return value if value else default


class RequestIdFilter(logging.Filter):
    """Stamp request (or chat connection) id and user id onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = get_request_id_value()
        if not hasattr(record, "ctx_user_id"):
            record.ctx_user_id = get_user_id_value()
        return True


def attach_request_id_filter(logger: Optional[logging.Logger] = None) -> None:
    target = logger or logging.getLogger()
    for handler in target.handlers:
        handler.addFilter(RequestIdFilter())
