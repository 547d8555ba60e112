# backend/zlecenia/routes/v1/threads.py
"""
Message thread routes - API v1

Read-only REST mirror of the chat socket's get_threads / get_messages.

Endpoints:
    GET /                        → Threads of the caller, most recent activity first
    GET /{thread_id}/messages    → Messages of a thread, newest first (participants only)
"""

from typing import NoReturn, Optional
import uuid

from fastapi import APIRouter, Depends, Query

from ...api.dependencies.auth import get_current_user_id
from ...api.dependencies.services import get_message_service, get_thread_service
from ...core.exceptions import DomainException
from ...schemas.chat import MessageListResponse, ThreadListResponse
from ...services.message_service import MessageService
from ...services.thread_service import ThreadService

router = APIRouter(tags=["threads-v1"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    raise exc.to_http_exception()


@router.get("", response_model=ThreadListResponse)
def list_threads(
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: ThreadService = Depends(get_thread_service),
) -> ThreadListResponse:
    return ThreadListResponse(threads=service.list_for_user(user_id))


@router.get("/{thread_id}/messages", response_model=MessageListResponse)
def list_messages(
    thread_id: uuid.UUID,
    limit: Optional[int] = Query(None, ge=1),
    offset: int = Query(0, ge=0),
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: MessageService = Depends(get_message_service),
) -> MessageListResponse:
    try:
        messages = service.list(thread_id, user_id, limit=limit, offset=offset)
    except DomainException as e:
        handle_domain_exception(e)
    return MessageListResponse(messages=messages)
