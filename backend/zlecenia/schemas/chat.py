# backend/zlecenia/schemas/chat.py
"""
Pydantic schemas for the chat wire protocol.

Inbound commands are JSON objects tagged by ``cmd``; outbound events are JSON
objects tagged by ``type``. The REST mirrors of ``get_threads`` and
``get_messages`` reuse ``ThreadInfo`` and ``MessageInfo``.
"""

from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union
import uuid

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter


class ThreadInfo(BaseModel):
    """A thread as seen by one participant."""

    id: uuid.UUID
    post_id: uuid.UUID
    post_title: str
    other_user_id: uuid.UUID
    other_user_name: str
    last_message: Optional[str] = None
    last_message_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MessageInfo(BaseModel):
    id: uuid.UUID
    thread_id: uuid.UUID
    sender_id: uuid.UUID
    sender_name: str
    content: str
    sent_at: datetime

    model_config = ConfigDict(from_attributes=True)


# Commands


class _Command(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=False)


class CreateThreadCommand(_Command):
    cmd: Literal["create_thread"]
    post_id: uuid.UUID
    other_user_id: uuid.UUID = Field(
        validation_alias=AliasChoices("other_user_id", "other_user"),
    )


class SendMessageCommand(_Command):
    cmd: Literal["send_message"]
    thread_id: uuid.UUID
    content: str


class GetThreadsCommand(_Command):
    cmd: Literal["get_threads"]


class GetMessagesCommand(_Command):
    cmd: Literal["get_messages"]
    thread_id: uuid.UUID
    limit: Optional[int] = None
    offset: Optional[int] = None


ChatCommand = Annotated[
    Union[CreateThreadCommand, SendMessageCommand, GetThreadsCommand, GetMessagesCommand],
    Field(discriminator="cmd"),
]

chat_command_adapter = TypeAdapter(ChatCommand)

# Events


class ThreadCreatedEvent(BaseModel):
    type: Literal["thread_created"] = "thread_created"
    thread: ThreadInfo


class MessageSentEvent(BaseModel):
    type: Literal["message_sent"] = "message_sent"
    message: MessageInfo


class ThreadsListEvent(BaseModel):
    type: Literal["threads_list"] = "threads_list"
    threads: List[ThreadInfo]


class MessagesListEvent(BaseModel):
    type: Literal["messages_list"] = "messages_list"
    messages: List[MessageInfo]


class NewMessageEvent(BaseModel):
    type: Literal["new_message"] = "new_message"
    message: MessageInfo


class ErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    message: str
    code: Optional[str] = None


class ThreadListResponse(BaseModel):
    threads: List[ThreadInfo]


class MessageListResponse(BaseModel):
    messages: List[MessageInfo]
