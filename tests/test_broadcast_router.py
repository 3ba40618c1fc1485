"""Tests for the broadcast router pipeline."""
import asyncio
import logging

import pytest

from chatroom.broadcast_router import BroadcastRouter
from chatroom.chat_models import BOT_FALLBACK_MESSAGE, BOT_NAME, ChatMessage, MessageRecord
from chatroom.persistence import MemoryMessageSink
from chatroom.responder import Responder, ResponderResult
from .conftest import FailingSink, StubResponder, chat_event, drain_outbox


class SlowSink(MemoryMessageSink):
    """Memory sink whose writes finish in reverse order of submission."""

    def __init__(self):
        super().__init__()
        self._delay = 0.05

    async def append(self, record: MessageRecord) -> None:
        delay = self._delay
        self._delay = max(self._delay - 0.01, 0.0)
        await asyncio.sleep(delay)
        await super().append(record)


@pytest.mark.asyncio
async def test_plain_message_broadcast_and_persisted(router, registry, sink, responder):
    alice = registry.on_connect("a")
    bob = registry.on_connect("b")

    reply = await router.handle_message("a", {"username": "alice", "message": "hello"})
    await router.drain()

    assert reply is None
    assert drain_outbox(alice) == [chat_event("alice", "hello")]
    assert drain_outbox(bob) == [chat_event("alice", "hello")]
    assert len(sink.records) == 1
    assert sink.records[0].sender_name == "alice"
    assert sink.records[0].body == "hello"
    assert responder.prompts == []


@pytest.mark.asyncio
async def test_bot_command_with_empty_username(router, registry, sink, responder):
    alice = registry.on_connect("a")

    reply = await router.handle_message("a", {"username": "", "message": "@bot what is 2+2"})
    await router.drain()

    assert reply == ChatMessage(sender_name=BOT_NAME, body="4")
    assert drain_outbox(alice) == [
        chat_event("Anonymous", "@bot what is 2+2"),
        chat_event("🤖 Bot", "4"),
    ]
    assert responder.prompts == ["what is 2+2"]
    assert [(r.sender_name, r.body) for r in sink.records] == [
        ("Anonymous", "@bot what is 2+2"),
        ("🤖 Bot", "4"),
    ]


@pytest.mark.asyncio
async def test_responder_failure_broadcasts_fallback(registry, sink):
    responder = StubResponder(error=RuntimeError("429 insufficient_quota for key sk-secret"))
    router = BroadcastRouter(registry=registry, sink=sink, responder=responder)
    alice = registry.on_connect("a")

    await router.handle_message("a", {"username": "alice", "message": "@BOT help"})
    await router.drain()

    events = drain_outbox(alice)
    assert len(events) == 2
    assert events[1]["data"]["username"] == BOT_NAME
    assert events[1]["data"]["message"] == "Sorry, I'm having trouble responding right now."
    assert "sk-secret" not in str(events)
    assert sink.records[1].body == BOT_FALLBACK_MESSAGE
    assert responder.prompts == ["help"]


@pytest.mark.asyncio
async def test_empty_completion_uses_fallback(registry, sink):
    router = BroadcastRouter(registry=registry, sink=sink, responder=StubResponder(reply=""))
    alice = registry.on_connect("a")

    reply = await router.handle_message("a", {"username": "alice", "message": "@bot"})

    assert reply.body == BOT_FALLBACK_MESSAGE
    assert drain_outbox(alice)[-1] == chat_event(BOT_NAME, BOT_FALLBACK_MESSAGE)


@pytest.mark.asyncio
async def test_bot_reply_body_is_completion_verbatim(registry, sink):
    router = BroadcastRouter(registry=registry, sink=sink, responder=StubResponder(reply="  4\n"))
    alice = registry.on_connect("a")

    reply = await router.handle_message("a", {"username": "alice", "message": "@bot 2+2"})
    await router.drain()

    assert reply.body == "  4\n"
    assert drain_outbox(alice)[-1] == chat_event(BOT_NAME, "  4\n")
    assert sink.records[-1].body == "  4\n"


@pytest.mark.asyncio
async def test_whitespace_completion_uses_fallback(registry, sink):
    router = BroadcastRouter(registry=registry, sink=sink, responder=StubResponder(reply=" \n\t"))
    registry.on_connect("a")

    reply = await router.handle_message("a", {"username": "alice", "message": "@bot hi"})

    assert reply.body == BOT_FALLBACK_MESSAGE


@pytest.mark.asyncio
async def test_responder_raising_from_complete_uses_fallback(registry, sink):
    class BrokenResponder(Responder):
        def __init__(self):
            super().__init__("broken", "Broken")

        async def _complete_text(self, prompt: str) -> str:
            return "unused"

        async def complete(self, prompt: str) -> ResponderResult:
            raise ConnectionError("reset by peer")

    router = BroadcastRouter(registry=registry, sink=sink, responder=BrokenResponder())
    registry.on_connect("a")

    reply = await router.handle_message("a", {"username": "alice", "message": "@bot hi"})

    assert reply == ChatMessage(sender_name=BOT_NAME, body=BOT_FALLBACK_MESSAGE)


@pytest.mark.asyncio
async def test_empty_prompt_is_forwarded(router, registry, responder):
    registry.on_connect("a")

    await router.handle_message("a", {"username": "alice", "message": "   @bot   "})

    assert responder.prompts == [""]


@pytest.mark.asyncio
async def test_trigger_prefix_without_space_is_command(router, registry, responder):
    registry.on_connect("a")

    reply = await router.handle_message("a", {"message": "@botwhat is 2+2"})
    await router.handle_message("a", {"message": "@Botty hi"})

    assert reply == ChatMessage(sender_name=BOT_NAME, body="4")
    assert responder.prompts == ["what is 2+2", "ty hi"]


@pytest.mark.asyncio
async def test_non_command_does_not_invoke_responder(router, registry, responder):
    alice = registry.on_connect("a")

    for text in ["hello @bot", "email me at x@bot.com", "bot, hi"]:
        assert router.submit("a", {"username": "alice", "message": text}) is None
    await router.drain()

    assert responder.prompts == []
    assert len(drain_outbox(alice)) == 3


@pytest.mark.asyncio
async def test_persistence_failure_does_not_affect_broadcast(registry, responder, caplog):
    sink = FailingSink()
    router = BroadcastRouter(registry=registry, sink=sink, responder=responder)
    alice = registry.on_connect("a")

    with caplog.at_level(logging.ERROR, logger="chatroom.broadcast_router"):
        await router.handle_message("a", {"username": "alice", "message": "@bot 2+2"})
        await router.drain()

    assert drain_outbox(alice) == [chat_event("alice", "@bot 2+2"), chat_event(BOT_NAME, "4")]
    assert len(sink.attempts) == 2
    assert "unreachable" in caplog.text


@pytest.mark.asyncio
async def test_broadcast_order_follows_arrival(registry):
    sink = SlowSink()
    router = BroadcastRouter(registry=registry, sink=sink, responder=StubResponder())
    observer = registry.on_connect("observer")

    texts = [f"message {i}" for i in range(10)]
    for text in texts:
        router.submit("observer", {"username": "alice", "message": text})
    await router.drain()

    received = [e["data"]["message"] for e in drain_outbox(observer)]
    assert received == texts
    # Writes completed in a different order than they were broadcast
    assert [r.body for r in sink.records] != texts
    assert sorted(r.body for r in sink.records) == sorted(texts)


@pytest.mark.asyncio
async def test_bot_reply_does_not_block_later_messages(registry, sink):
    router = BroadcastRouter(registry=registry, sink=sink, responder=StubResponder(reply="late", delay=0.05))
    alice = registry.on_connect("a")

    router.submit("a", {"username": "alice", "message": "@bot think hard"})
    router.submit("a", {"username": "alice", "message": "meanwhile"})
    await router.drain()

    assert [e["data"]["message"] for e in drain_outbox(alice)] == ["@bot think hard", "meanwhile", "late"]


@pytest.mark.asyncio
async def test_record_ids_unique_under_burst(router, registry, sink, responder):
    registry.on_connect("a")

    await asyncio.gather(*[
        router.handle_message("a", {"username": "alice", "message": f"@bot question {i}"})
        for i in range(50)
    ])
    await router.drain()

    ids = [r.id for r in sink.records]
    assert len(ids) == 100
    assert len(set(ids)) == 100
    assert len(responder.prompts) == 50


@pytest.mark.asyncio
async def test_disconnected_session_gets_no_broadcast(router, registry):
    a = registry.on_connect("a")
    b = registry.on_connect("b")
    registry.on_disconnect("a")

    await router.handle_message("b", {"username": "bob", "message": "anyone?"})

    assert "a" not in registry
    assert drain_outbox(a) == []
    assert drain_outbox(b) == [chat_event("bob", "anyone?")]


@pytest.mark.asyncio
async def test_payload_name_wins_over_session_name(router, registry):
    alice = registry.on_connect("a")
    router.set_name("a", {"username": "alice"})

    await router.handle_message("a", {"username": "mallory", "message": "hi"})

    assert registry.lookup("a") == "alice"
    assert drain_outbox(alice) == [chat_event("mallory", "hi")]


@pytest.mark.asyncio
async def test_missing_message_is_empty_string(router, registry, sink):
    alice = registry.on_connect("a")

    await router.handle_message("a", {"username": "alice"})
    await router.handle_message("a", None)
    await router.drain()

    assert drain_outbox(alice) == [chat_event("alice", ""), chat_event("Anonymous", "")]
    assert [r.body for r in sink.records] == ["", ""]


@pytest.mark.asyncio
async def test_bare_string_payload_is_message_body(router, registry):
    alice = registry.on_connect("a")

    await router.handle_message("a", "just text")

    assert drain_outbox(alice) == [chat_event("Anonymous", "just text")]


def test_set_name_accepts_dict_or_string(router, registry):
    registry.on_connect("a")

    router.set_name("a", "alice")
    assert registry.lookup("a") == "alice"

    router.set_name("a", {"username": "bob"})
    assert registry.lookup("a") == "bob"

    router.set_name("a", {"username": ""})
    assert registry.lookup("a") == "Anonymous"


@pytest.mark.asyncio
async def test_drain_waits_for_pending_tasks(registry, sink):
    router = BroadcastRouter(registry=registry, sink=sink, responder=StubResponder(delay=0.02))
    registry.on_connect("a")

    router.submit("a", {"username": "alice", "message": "@bot hi"})
    assert router.pending_count > 0

    await router.drain()

    assert router.pending_count == 0
    assert len(sink.records) == 2


@pytest.mark.asyncio
async def test_broadcast_with_no_sessions_still_persists(router, sink):
    await router.handle_message("gone", {"username": "ghost", "message": "boo"})
    await router.drain()

    assert [r.body for r in sink.records] == ["boo"]
