#!/usr/bin/env python3
"""Broadcast router: turns inbound chat events into fan-out, persistence and bot replies.

Every broadcast is emitted synchronously into the outbox of each live
session, so broadcast order is the order in which messages were submitted.
Persistence and responder calls run as background tasks and may finish in
any order.
"""

import asyncio
import logging
from typing import Any, Coroutine, Optional, Set

from .bot_command import DEFAULT_TRIGGER, BotCommand, parse_bot_command
from .chat_models import (
    BOT_FALLBACK_MESSAGE,
    BOT_NAME,
    EVENT_CHAT,
    ChatMessage,
    ChatPayload,
    MessageRecord,
)
from .persistence import MessageSink
from .responder import Responder, ResponderFailure, ResponderResult
from .session_registry import SessionRegistry

logger = logging.getLogger(__name__)


class BroadcastRouter:
    """Routes chat messages to all live sessions and invokes the bot on demand."""

    def __init__(
        self,
        *,
        registry: SessionRegistry,
        sink: MessageSink,
        responder: Responder,
        bot_name: str = BOT_NAME,
        bot_trigger: str = DEFAULT_TRIGGER,
    ):
        """Initialize router.

        Args:
            registry: Live sessions receiving every broadcast
            sink: Store receiving one record per broadcast message
            responder: Client answering bot commands
            bot_name: Sender name of bot replies
            bot_trigger: Command token addressing the bot
        """
        self.registry = registry
        self.sink = sink
        self.responder = responder
        self.bot_name = bot_name
        self.bot_trigger = bot_trigger
        self._tasks: Set[asyncio.Task] = set()

    # ── Fan-out and persistence ───────────────────────────────

    def broadcast(self, message: ChatMessage) -> int:
        """Queue ``message`` for every live session. Never suspends.

        Returns the number of recipients.
        """
        event = {"event": EVENT_CHAT, "data": message.to_wire()}
        recipients = self.registry.sessions()
        for entry in recipients:
            entry.deliver(event)
        return len(recipients)

    def publish(self, message: ChatMessage) -> MessageRecord:
        """Broadcast ``message`` and schedule exactly one persistence attempt for it."""
        self.broadcast(message)
        record = MessageRecord.from_message(message)
        self._spawn(self._persist(record))
        return record

    async def _persist(self, record: MessageRecord) -> None:
        try:
            await self.sink.append(record)
        except Exception as e:
            logger.error(f"[ROUTER] Error saving message {record.id} to {self.sink.name}: {e}")

    # ── Inbound messages ──────────────────────────────────────

    def submit(self, connection_id: str, payload: Any) -> Optional[asyncio.Task]:
        """Broadcast and persist an inbound chat message; start the bot if addressed.

        The broadcast happens before this method returns. If the message is a
        bot command, the responder call runs as a background task which is
        returned; otherwise returns None.
        """
        message = ChatMessage.from_payload(ChatPayload.parse(payload))
        logger.debug(f"[ROUTER] Message from {connection_id} ({self.registry.lookup(connection_id)}): {message.body!r}")
        self.publish(message)

        command = parse_bot_command(message.body, self.bot_trigger)
        if command is None:
            return None
        logger.info(f"[BOT] {message.sender_name} asked: {command.prompt!r}")
        return self._spawn(self._answer(command))

    async def handle_message(self, connection_id: str, payload: Any) -> Optional[ChatMessage]:
        """Process one inbound chat message to completion.

        Returns the bot reply if the message was a bot command, else None.
        Persistence may still be pending when this returns; see :meth:`drain`.
        """
        task = self.submit(connection_id, payload)
        if task is None:
            return None
        return await task

    def set_name(self, connection_id: str, payload: Any) -> None:
        """Apply a ``set username`` event: ``{"username": ...}`` or a bare string."""
        name = payload.get("username") if isinstance(payload, dict) else payload
        self.registry.set_name(connection_id, name)

    # ── Bot replies ───────────────────────────────────────────

    async def _answer(self, command: BotCommand) -> ChatMessage:
        try:
            result = await self.responder.complete(command.prompt)
        except Exception as e:
            result = ResponderResult.failure(ResponderFailure(f"{type(e).__name__}: {e}"))

        if result.ok:
            reply = ChatMessage(sender_name=self.bot_name, body=result.text)
        else:
            logger.error(f"[BOT] {self.responder.label} error: {result.error}")
            reply = ChatMessage(sender_name=self.bot_name, body=BOT_FALLBACK_MESSAGE)

        self.publish(reply)
        return reply

    # ── Background tasks ──────────────────────────────────────

    def _spawn(self, coro: Coroutine) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def pending_count(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait until all persistence and responder tasks have finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
