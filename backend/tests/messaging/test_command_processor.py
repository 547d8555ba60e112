from contextlib import contextmanager
import json
import uuid

import pytest

from zlecenia.monitoring.prometheus_metrics import REGISTRY
from zlecenia.services.messaging.command_processor import CommandProcessor
from zlecenia.services.messaging.connection_registry import Connection, ConnectionRegistry
from zlecenia.services.message_service import MessageService
from zlecenia.services.thread_service import ThreadService


def _events(connection):
    items = []
    while not connection.queue.empty():
        items.append(connection.queue.get_nowait())
    return items


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def processor(registry):
    return CommandProcessor(registry=registry)


def _connect(registry, user):
    connection = Connection.open(user.id, dedup_window=16)
    registry.register(user.id, connection)
    return connection


@pytest.mark.asyncio
class TestCommandParsing:
    async def test_invalid_json(self, processor, registry, alice):
        connection = _connect(registry, alice)

        await processor.handle_raw(connection, "{not json")

        (event,) = _events(connection)
        assert event["type"] == "error"
        assert event["code"] == "validation_error"

    async def test_unknown_command(self, processor, registry, alice):
        connection = _connect(registry, alice)

        await processor.handle_raw(connection, json.dumps({"cmd": "delete_everything"}))

        (event,) = _events(connection)
        assert event["code"] == "validation_error"

    async def test_unknown_commands_share_one_metric_series(self, processor, registry, alice):
        connection = _connect(registry, alice)

        def command_series():
            return {
                sample.labels["cmd"]
                for metric in REGISTRY.collect()
                if metric.name == "zlecenia_chat_commands"
                for sample in metric.samples
                if sample.name == "zlecenia_chat_commands_total"
            }

        before = REGISTRY.get_sample_value(
            "zlecenia_chat_commands_total", {"cmd": "invalid", "status": "validation_error"}
        ) or 0.0
        for n in range(25):
            await processor.handle_raw(connection, json.dumps({"cmd": f"junk-{n}"}))

        after = REGISTRY.get_sample_value(
            "zlecenia_chat_commands_total", {"cmd": "invalid", "status": "validation_error"}
        )
        assert after - before == 25
        assert not any(label.startswith("junk-") for label in command_series())

    async def test_known_command_keeps_its_label_on_validation_error(self, processor, registry, alice):
        connection = _connect(registry, alice)
        labels = {"cmd": "send_message", "status": "validation_error"}
        before = REGISTRY.get_sample_value("zlecenia_chat_commands_total", labels) or 0.0

        await processor.handle_raw(connection, json.dumps({"cmd": "send_message"}))

        assert REGISTRY.get_sample_value("zlecenia_chat_commands_total", labels) == before + 1

    async def test_missing_field(self, processor, registry, alice):
        connection = _connect(registry, alice)

        await processor.handle_raw(connection, json.dumps({"cmd": "send_message", "content": "hi"}))

        (event,) = _events(connection)
        assert event["code"] == "validation_error"
        assert "thread_id" in event["message"]

    async def test_non_object_payload(self, processor, registry, alice):
        connection = _connect(registry, alice)

        await processor.handle_raw(connection, "[1, 2, 3]")

        (event,) = _events(connection)
        assert event["code"] == "validation_error"


@pytest.mark.asyncio
class TestCreateThread:
    async def test_creator_gets_thread_and_counterpart_gets_list(
        self, processor, registry, alice, bob, bob_post
    ):
        alice_conn = _connect(registry, alice)
        bob_conn = _connect(registry, bob)

        await processor.handle_raw(
            alice_conn,
            json.dumps({"cmd": "create_thread", "post_id": str(bob_post.id), "other_user_id": str(bob.id)}),
        )

        (created,) = _events(alice_conn)
        assert created["type"] == "thread_created"
        assert created["thread"]["other_user_id"] == str(bob.id)
        assert created["thread"]["post_title"] == "Physics help wanted"

        (listing,) = _events(bob_conn)
        assert listing["type"] == "threads_list"
        assert [t["id"] for t in listing["threads"]] == [created["thread"]["id"]]

    async def test_legacy_other_user_field(self, processor, registry, alice, bob, bob_post):
        alice_conn = _connect(registry, alice)

        await processor.handle_raw(
            alice_conn,
            json.dumps({"cmd": "create_thread", "post_id": str(bob_post.id), "other_user": str(bob.id)}),
        )

        (created,) = _events(alice_conn)
        assert created["type"] == "thread_created"

    async def test_self_thread_is_a_validation_error(self, processor, registry, bob, bob_post):
        bob_conn = _connect(registry, bob)

        await processor.handle_raw(
            bob_conn,
            json.dumps({"cmd": "create_thread", "post_id": str(bob_post.id), "other_user_id": str(bob.id)}),
        )

        (event,) = _events(bob_conn)
        assert event["type"] == "error"
        assert event["code"] == "validation_error"

    async def test_unknown_post(self, processor, registry, alice, bob):
        alice_conn = _connect(registry, alice)

        await processor.handle_raw(
            alice_conn,
            json.dumps({"cmd": "create_thread", "post_id": str(uuid.uuid4()), "other_user_id": str(bob.id)}),
        )

        (event,) = _events(alice_conn)
        assert event["code"] == "not_found"

    async def test_watch_hooks_are_asked_to_subscribe(self, processor, registry, alice, bob, bob_post):
        alice_conn = _connect(registry, alice)
        bob_conn = _connect(registry, bob)
        watched = []
        alice_conn.watch_hook = lambda thread_id: watched.append(("alice", thread_id))
        bob_conn.watch_hook = lambda thread_id: watched.append(("bob", thread_id))

        await processor.handle_raw(
            alice_conn,
            json.dumps({"cmd": "create_thread", "post_id": str(bob_post.id), "other_user_id": str(bob.id)}),
        )

        (created,) = _events(alice_conn)
        thread_id = uuid.UUID(created["thread"]["id"])
        assert sorted(watched) == [("alice", thread_id), ("bob", thread_id)]


@pytest.mark.asyncio
class TestSendMessage:
    async def test_recipient_gets_new_message_and_sender_gets_ack(
        self, processor, registry, db, alice, bob, bob_post
    ):
        thread = ThreadService(db).create_or_get(bob_post.id, alice.id, bob.id)
        alice_conn = _connect(registry, alice)
        bob_conn = _connect(registry, bob)

        await processor.handle_raw(
            alice_conn, json.dumps({"cmd": "send_message", "thread_id": str(thread.id), "content": "hi"})
        )

        (ack,) = _events(alice_conn)
        assert ack["type"] == "message_sent"
        assert ack["message"]["content"] == "hi"

        (pushed,) = _events(bob_conn)
        assert pushed["type"] == "new_message"
        assert pushed["message"]["id"] == ack["message"]["id"]
        assert pushed["message"]["sender_name"] == "alice"

    async def test_sender_connection_ignores_its_own_echo(
        self, processor, registry, db, alice, bob, bob_post
    ):
        thread = ThreadService(db).create_or_get(bob_post.id, alice.id, bob.id)
        alice_conn = _connect(registry, alice)

        await processor.handle_raw(
            alice_conn, json.dumps({"cmd": "send_message", "thread_id": str(thread.id), "content": "hi"})
        )
        (ack,) = _events(alice_conn)

        # Same message arriving later through LISTEN/NOTIFY
        alice_conn.push({"type": "new_message", "message": ack["message"]})

        assert _events(alice_conn) == []

    async def test_outsider_is_denied(self, processor, registry, db, alice, bob, carol, bob_post):
        thread = ThreadService(db).create_or_get(bob_post.id, alice.id, bob.id)
        carol_conn = _connect(registry, carol)

        await processor.handle_raw(
            carol_conn, json.dumps({"cmd": "send_message", "thread_id": str(thread.id), "content": "hi"})
        )

        (event,) = _events(carol_conn)
        assert event == {"type": "error", "message": "Access denied to this thread", "code": "access_denied"}

    async def test_blank_content(self, processor, registry, db, alice, bob, bob_post):
        thread = ThreadService(db).create_or_get(bob_post.id, alice.id, bob.id)
        alice_conn = _connect(registry, alice)

        await processor.handle_raw(
            alice_conn, json.dumps({"cmd": "send_message", "thread_id": str(thread.id), "content": "  "})
        )

        (event,) = _events(alice_conn)
        assert event["code"] == "validation_error"


@pytest.mark.asyncio
class TestQueries:
    async def test_get_threads(self, processor, registry, db, alice, bob, bob_post):
        thread = ThreadService(db).create_or_get(bob_post.id, alice.id, bob.id)
        alice_conn = _connect(registry, alice)

        await processor.handle_raw(alice_conn, json.dumps({"cmd": "get_threads"}))

        (event,) = _events(alice_conn)
        assert event["type"] == "threads_list"
        assert [t["id"] for t in event["threads"]] == [str(thread.id)]

    async def test_get_messages(self, processor, registry, db, alice, bob, bob_post):
        thread = ThreadService(db).create_or_get(bob_post.id, alice.id, bob.id)
        MessageService(db).append(thread.id, bob.id, "hello")
        alice_conn = _connect(registry, alice)

        await processor.handle_raw(
            alice_conn, json.dumps({"cmd": "get_messages", "thread_id": str(thread.id), "limit": 10})
        )

        (event,) = _events(alice_conn)
        assert event["type"] == "messages_list"
        assert [m["content"] for m in event["messages"]] == ["hello"]
        assert event["messages"][0]["sender_name"] == "bob"

    async def test_get_messages_with_zero_limit(self, processor, registry, db, alice, bob, bob_post):
        thread = ThreadService(db).create_or_get(bob_post.id, alice.id, bob.id)
        MessageService(db).append(thread.id, bob.id, "hello")
        alice_conn = _connect(registry, alice)

        await processor.handle_raw(
            alice_conn, json.dumps({"cmd": "get_messages", "thread_id": str(thread.id), "limit": 0})
        )

        (event,) = _events(alice_conn)
        assert event["type"] == "error"
        assert event["code"] == "validation_error"

    async def test_get_messages_as_outsider(self, processor, registry, db, alice, bob, carol, bob_post):
        thread = ThreadService(db).create_or_get(bob_post.id, alice.id, bob.id)
        carol_conn = _connect(registry, carol)

        await processor.handle_raw(
            carol_conn, json.dumps({"cmd": "get_messages", "thread_id": str(thread.id)})
        )

        (event,) = _events(carol_conn)
        assert event["code"] == "access_denied"


@pytest.mark.asyncio
async def test_unexpected_failure_becomes_internal_error(registry, alice):
    @contextmanager
    def broken_session():
        raise RuntimeError("database exploded")
        yield

    processor = CommandProcessor(registry=registry, session_factory=broken_session)
    alice_conn = _connect(registry, alice)

    await processor.handle_raw(alice_conn, json.dumps({"cmd": "get_threads"}))

    (event,) = _events(alice_conn)
    assert event == {"type": "error", "message": "Internal server error", "code": "internal_error"}
