from datetime import timedelta
import uuid

import pytest

from zlecenia.core.config import settings
from zlecenia.core.exceptions import ForbiddenException, ValidationException
from zlecenia.models.types import utcnow
from zlecenia.services.message_service import MessageService, clamp_page
from zlecenia.services.thread_service import ThreadService


@pytest.fixture
def thread(db, alice, bob, bob_post):
    return ThreadService(db).create_or_get(bob_post.id, alice.id, bob.id)


class TestClampPage:
    @pytest.mark.parametrize(
        "limit, offset, expected",
        [
            (None, None, (50, 0)),
            (1000, -5, (200, 0)),
            (20, 40, (20, 40)),
        ],
    )
    def test_clamp(self, limit, offset, expected):
        assert clamp_page(limit, offset) == expected

    @pytest.mark.parametrize("limit", [0, -1])
    def test_limit_below_one_is_rejected(self, limit):
        with pytest.raises(ValidationException) as exc:
            clamp_page(limit, 0)
        assert exc.value.code == "INVALID_LIMIT"


class TestAppend:
    def test_append_returns_recipient_and_sender_name(self, db, alice, bob, thread):
        sent = MessageService(db).append(thread.id, alice.id, "hi")

        assert sent.recipient_id == bob.id
        assert sent.message.sender_name == "alice"
        assert sent.message.content == "hi"
        assert sent.message.thread_id == thread.id

    def test_content_is_stored_verbatim(self, db, alice, thread):
        service = MessageService(db)
        service.append(thread.id, alice.id, "  spaced out  ")

        (stored,) = service.list(thread.id, alice.id)

        assert stored.content == "  spaced out  "

    @pytest.mark.parametrize("content", ["", "   ", "\n\t"])
    def test_blank_content_is_rejected(self, db, alice, thread, content):
        with pytest.raises(ValidationException) as exc_info:
            MessageService(db).append(thread.id, alice.id, content)
        assert exc_info.value.code == "EMPTY_MESSAGE"

    def test_content_over_limit_is_rejected(self, db, alice, thread):
        too_long = "x" * (settings.chat_max_message_length + 1)

        with pytest.raises(ValidationException) as exc_info:
            MessageService(db).append(thread.id, alice.id, too_long)
        assert exc_info.value.code == "MESSAGE_TOO_LONG"

    def test_content_at_limit_is_accepted(self, db, alice, thread):
        content = "x" * settings.chat_max_message_length

        sent = MessageService(db).append(thread.id, alice.id, content)

        assert len(sent.message.content) == settings.chat_max_message_length

    def test_outsider_cannot_post(self, db, carol, thread):
        with pytest.raises(ForbiddenException) as exc_info:
            MessageService(db).append(thread.id, carol.id, "let me in")
        assert exc_info.value.code == "NOT_A_PARTICIPANT"

    def test_unknown_thread_is_forbidden(self, db, alice):
        with pytest.raises(ForbiddenException):
            MessageService(db).append(uuid.uuid4(), alice.id, "hello?")


class TestList:
    def test_newest_first_with_paging(self, db, alice, bob, thread):
        service = MessageService(db)
        base = utcnow()
        for i in range(4):
            sender = alice if i % 2 == 0 else bob
            service.append(thread.id, sender.id, f"m{i}", sent_at=base + timedelta(seconds=i))

        page = service.list(thread.id, bob.id, limit=2, offset=1)

        assert [m.content for m in page] == ["m2", "m1"]
        assert [m.sender_name for m in page] == ["alice", "bob"]

    def test_outsider_cannot_read(self, db, carol, thread):
        with pytest.raises(ForbiddenException):
            MessageService(db).list(thread.id, carol.id)

    def test_empty_thread(self, db, alice, thread):
        assert MessageService(db).list(thread.id, alice.id) == []
