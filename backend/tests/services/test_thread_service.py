from datetime import timedelta
import uuid

import pytest
from sqlalchemy import delete

from zlecenia.core.exceptions import NotFoundException, ValidationException
from zlecenia.models.types import utcnow
from zlecenia.models.user import User
from zlecenia.repositories.thread_repository import ThreadRepository
from zlecenia.services.message_service import MessageService
from zlecenia.services.thread_service import ThreadService


class TestCreateOrGet:
    def test_same_thread_regardless_of_who_opens_it(self, db, alice, bob, bob_post):
        service = ThreadService(db)

        opened_by_alice = service.create_or_get(bob_post.id, alice.id, bob.id)
        opened_by_bob = service.create_or_get(bob_post.id, bob.id, alice.id)

        assert opened_by_alice.id == opened_by_bob.id

    def test_thread_with_yourself_is_rejected(self, db, bob, bob_post):
        with pytest.raises(ValidationException) as exc_info:
            ThreadService(db).create_or_get(bob_post.id, bob.id, bob.id)
        assert exc_info.value.code == "SELF_THREAD"

    def test_unknown_post(self, db, alice, bob):
        with pytest.raises(NotFoundException) as exc_info:
            ThreadService(db).create_or_get(uuid.uuid4(), alice.id, bob.id)
        assert exc_info.value.code == "POST_NOT_FOUND"

    def test_unknown_counterpart(self, db, alice, bob_post):
        with pytest.raises(NotFoundException) as exc_info:
            ThreadService(db).create_or_get(bob_post.id, alice.id, uuid.uuid4())
        assert exc_info.value.code == "USER_NOT_FOUND"

    def test_thread_survives_the_service_session(self, db, alice, bob, bob_post):
        thread = ThreadService(db).create_or_get(bob_post.id, alice.id, bob.id)
        db.rollback()

        assert ThreadRepository(db).get_by_id(thread.id) is not None


class TestThreadAccess:
    def test_participant_can_read(self, db, alice, bob, bob_post):
        service = ThreadService(db)
        thread = service.create_or_get(bob_post.id, alice.id, bob.id)

        assert service.get(thread.id, alice.id).id == thread.id
        assert service.get(thread.id, bob.id).id == thread.id

    def test_outsider_sees_not_found(self, db, alice, bob, carol, bob_post):
        service = ThreadService(db)
        thread = service.create_or_get(bob_post.id, alice.id, bob.id)

        with pytest.raises(NotFoundException):
            service.get(thread.id, carol.id)
        with pytest.raises(NotFoundException):
            service.get_info(thread.id, carol.id)

    def test_info_is_from_the_callers_side(self, db, alice, bob, bob_post):
        service = ThreadService(db)
        thread = service.create_or_get(bob_post.id, alice.id, bob.id)

        info = service.get_info(thread.id, bob.id)

        assert info.other_user_id == alice.id
        assert info.other_user_name == "alice"
        assert info.post_title == "Physics help wanted"


class TestListForUser:
    def test_most_recent_activity_first(self, db, alice, bob, carol, bob_post, make_post):
        service = ThreadService(db)
        messages = MessageService(db)
        carol_post = make_post(carol, title="Chemistry")
        with_bob = service.create_or_get(bob_post.id, alice.id, bob.id)
        with_carol = service.create_or_get(carol_post.id, alice.id, carol.id)

        base = utcnow() + timedelta(minutes=1)
        messages.append(with_carol.id, carol.id, "first", sent_at=base)
        messages.append(with_bob.id, bob.id, "second", sent_at=base + timedelta(seconds=5))

        threads = service.list_for_user(alice.id)

        assert [t.id for t in threads] == [with_bob.id, with_carol.id]
        assert threads[0].last_message == "second"
        assert threads[0].other_user_name == "bob"
        assert threads[1].last_message == "first"

    def test_thread_without_messages_has_no_preview(self, db, alice, bob, bob_post):
        service = ThreadService(db)
        service.create_or_get(bob_post.id, alice.id, bob.id)

        (info,) = service.list_for_user(alice.id)

        assert info.last_message is None
        assert info.last_message_at is None

    def test_thread_with_vanished_counterpart_is_skipped(self, db, alice, bob, carol, bob_post, make_post):
        service = ThreadService(db)
        carol_post = make_post(carol, title="Chemistry")
        kept = service.create_or_get(bob_post.id, alice.id, bob.id)
        service.create_or_get(carol_post.id, alice.id, carol.id)

        db.execute(delete(User).where(User.id == carol.id))
        db.commit()

        assert [t.id for t in service.list_for_user(alice.id)] == [kept.id]

    def test_user_with_no_threads(self, db, carol):
        assert ThreadService(db).list_for_user(carol.id) == []
        assert ThreadService(db).thread_ids_for_user(carol.id) == []
