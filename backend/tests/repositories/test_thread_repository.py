from datetime import timedelta

from sqlalchemy import func, select

from zlecenia.models.message_thread import MessageThread, canonical_pair
from zlecenia.models.types import utcnow
from zlecenia.repositories.thread_repository import ThreadRepository


class TestThreadRepositoryUpsert:
    def test_upsert_stores_pair_in_canonical_order(self, db, alice, bob, bob_post):
        repo = ThreadRepository(db)

        thread = repo.upsert(bob_post.id, bob.id, alice.id)
        db.commit()

        assert thread.user_a < thread.user_b
        assert {thread.user_a, thread.user_b} == {alice.id, bob.id}

    def test_upsert_twice_in_either_order_returns_same_row(self, db, alice, bob, bob_post):
        repo = ThreadRepository(db)

        first = repo.upsert(bob_post.id, alice.id, bob.id)
        db.commit()
        second = repo.upsert(bob_post.id, bob.id, alice.id)
        db.commit()

        assert first.id == second.id
        total = db.scalar(select(func.count()).select_from(MessageThread))
        assert total == 1

    def test_upsert_touches_updated_at(self, db, alice, bob, bob_post):
        repo = ThreadRepository(db)
        thread = repo.upsert(bob_post.id, alice.id, bob.id)
        db.commit()
        created_at = thread.created_at
        first_update = thread.updated_at

        again = repo.upsert(bob_post.id, alice.id, bob.id)
        db.commit()

        assert again.created_at == created_at
        assert again.updated_at >= first_update

    def test_different_posts_get_different_threads(self, db, alice, bob, bob_post, make_post):
        other_post = make_post(bob, title="Chemistry")
        repo = ThreadRepository(db)

        first = repo.upsert(bob_post.id, alice.id, bob.id)
        second = repo.upsert(other_post.id, alice.id, bob.id)
        db.commit()

        assert first.id != second.id

    def test_canonical_pair_orders_ids(self, alice, bob):
        low, high = sorted([alice.id, bob.id])
        assert canonical_pair(high, low) == (low, high)
        assert canonical_pair(low, high) == (low, high)


class TestThreadRepositoryQueries:
    def test_participant_lookup(self, db, alice, bob, carol, bob_post):
        repo = ThreadRepository(db)
        thread = repo.upsert(bob_post.id, alice.id, bob.id)
        db.commit()

        assert repo.get_for_participant(thread.id, alice.id) is not None
        assert repo.get_for_participant(thread.id, bob.id) is not None
        assert repo.get_for_participant(thread.id, carol.id) is None
        assert repo.is_participant(thread.id, carol.id) is False

    def test_thread_ids_for_user(self, db, alice, bob, carol, bob_post):
        repo = ThreadRepository(db)
        with_alice = repo.upsert(bob_post.id, alice.id, bob.id)
        with_carol = repo.upsert(bob_post.id, carol.id, bob.id)
        db.commit()

        assert set(repo.thread_ids_for_user(bob.id)) == {with_alice.id, with_carol.id}
        assert repo.thread_ids_for_user(alice.id) == [with_alice.id]

    def test_summary_is_seen_from_the_requesting_user(self, db, alice, bob, bob_post):
        repo = ThreadRepository(db)
        thread = repo.upsert(bob_post.id, alice.id, bob.id)
        db.commit()

        for_alice = repo.get_summary(thread.id, alice.id)
        for_bob = repo.get_summary(thread.id, bob.id)

        assert for_alice.other_user_id == bob.id
        assert for_alice.other_user_name == "bob"
        assert for_bob.other_user_id == alice.id
        assert for_alice.post_title == "Physics help wanted"
        assert for_alice.last_message is None
        assert for_alice.last_message_at is None

    def test_list_orders_by_last_activity(self, db, alice, bob, carol, bob_post):
        repo = ThreadRepository(db)
        older = repo.upsert(bob_post.id, alice.id, bob.id)
        newer = repo.upsert(bob_post.id, carol.id, bob.id)
        db.commit()
        repo.touch(newer.id, utcnow() + timedelta(minutes=1))
        repo.touch(older.id, utcnow() + timedelta(minutes=2))
        db.commit()

        rows = repo.list_for_user(bob.id)

        assert [row.id for row in rows] == [older.id, newer.id]
