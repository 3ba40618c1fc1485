"""Test configuration and fixtures."""
import asyncio
from typing import List, Optional

import pytest

from chatroom.broadcast_router import BroadcastRouter
from chatroom.chat_models import MessageRecord
from chatroom.persistence import MemoryMessageSink, MessageSink, MessageSinkError
from chatroom.responder import Responder
from chatroom.session_registry import SessionEntry, SessionRegistry


class StubResponder(Responder):
    """Responder returning a fixed reply, optionally after a delay or with an error."""

    def __init__(self, reply: str = "4", error: Optional[Exception] = None, delay: float = 0.0):
        super().__init__("stub", "Stub")
        self.reply = reply
        self.error = error
        self.delay = delay
        self.prompts: List[str] = []

    async def _complete_text(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.reply


class FailingSink(MessageSink):
    """Sink rejecting every write."""

    def __init__(self):
        super().__init__(name="failing")
        self.attempts: List[MessageRecord] = []

    async def append(self, record: MessageRecord) -> None:
        self.attempts.append(record)
        raise MessageSinkError("table ChatMessages unreachable")


def drain_outbox(entry: SessionEntry) -> list:
    """Return and remove every event queued for a session."""
    events = []
    while not entry.outbox.empty():
        events.append(entry.outbox.get_nowait())
    return events


def chat_event(username: str, message: str) -> dict:
    return {"event": "chat message", "data": {"username": username, "message": message}}


@pytest.fixture
def registry():
    return SessionRegistry()


@pytest.fixture
def sink():
    return MemoryMessageSink()


@pytest.fixture
def responder():
    return StubResponder()


@pytest.fixture
def router(registry, sink, responder):
    return BroadcastRouter(registry=registry, sink=sink, responder=responder)
