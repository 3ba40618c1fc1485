"""chatroom — real-time chat relay with an @bot responder."""

from chatroom.chat_models import (
    ANONYMOUS,
    BOT_NAME,
    BOT_FALLBACK_MESSAGE,
    ChatMessage,
    ChatPayload,
    MessageRecord,
)
from chatroom.bot_command import BotCommand, parse_bot_command
from chatroom.session_registry import SessionEntry, SessionRegistry
from chatroom.broadcast_router import BroadcastRouter
from chatroom.config import RelayConfig
from chatroom.persistence import MessageSink, MessageSinkError, MemoryMessageSink
from chatroom.responder import Responder, ResponderFailure, ResponderResult

__all__ = [
    "ANONYMOUS",
    "BOT_NAME",
    "BOT_FALLBACK_MESSAGE",
    "ChatMessage",
    "ChatPayload",
    "MessageRecord",
    "BotCommand",
    "parse_bot_command",
    "SessionEntry",
    "SessionRegistry",
    "BroadcastRouter",
    "RelayConfig",
    "MessageSink",
    "MessageSinkError",
    "MemoryMessageSink",
    "Responder",
    "ResponderFailure",
    "ResponderResult",
    "create_app",
]


def __getattr__(name: str):
    if name == "create_app":
        from chatroom.standalone import create_app
        return create_app
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
