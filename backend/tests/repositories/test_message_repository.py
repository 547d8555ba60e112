from datetime import timedelta
import json
import uuid

from zlecenia.models.types import utcnow
from zlecenia.repositories.message_repository import (
    MessageRepository,
    channel_for_thread,
    notification_payload,
)
from zlecenia.repositories.thread_repository import ThreadRepository


def test_channel_name_is_a_plain_identifier():
    thread_id = uuid.UUID("12345678-1234-5678-1234-567812345678")

    assert channel_for_thread(thread_id) == "thread_12345678123456781234567812345678"


class TestMessageRepository:
    def _thread(self, db, alice, bob, post):
        thread = ThreadRepository(db).upsert(post.id, alice.id, bob.id)
        db.commit()
        return thread

    def test_append_touches_thread(self, db, alice, bob, bob_post):
        thread = self._thread(db, alice, bob, bob_post)
        later = utcnow() + timedelta(minutes=5)

        message = MessageRepository(db).append(thread.id, alice.id, "hi", sent_at=later)
        db.commit()
        db.refresh(thread)

        assert message.sent_at == later
        assert thread.updated_at == later

    def test_list_newest_first_with_sender_name(self, db, alice, bob, bob_post):
        thread = self._thread(db, alice, bob, bob_post)
        repo = MessageRepository(db)
        base = utcnow()
        repo.append(thread.id, alice.id, "first", sent_at=base)
        repo.append(thread.id, bob.id, "second", sent_at=base + timedelta(seconds=1))
        repo.append(thread.id, alice.id, "third", sent_at=base + timedelta(seconds=2))
        db.commit()

        rows = repo.list_for_thread(thread.id, limit=10, offset=0)

        assert [row.content for row in rows] == ["third", "second", "first"]
        assert [row.sender_name for row in rows] == ["alice", "bob", "alice"]

    def test_list_applies_limit_and_offset(self, db, alice, bob, bob_post):
        thread = self._thread(db, alice, bob, bob_post)
        repo = MessageRepository(db)
        base = utcnow()
        for i in range(5):
            repo.append(thread.id, alice.id, f"m{i}", sent_at=base + timedelta(seconds=i))
        db.commit()

        page = repo.list_for_thread(thread.id, limit=2, offset=1)

        assert [row.content for row in page] == ["m3", "m2"]

    def test_notification_payload_fields(self, db, alice, bob, bob_post):
        thread = self._thread(db, alice, bob, bob_post)
        message = MessageRepository(db).append(thread.id, alice.id, "hello")
        db.commit()

        payload = json.loads(notification_payload(message))

        assert payload == {
            "message_id": str(message.id),
            "thread_id": str(thread.id),
            "sender_id": str(alice.id),
            "content": "hello",
            "sent_at": message.sent_at.isoformat(),
        }
