"""Models for chat relay messages."""
import threading
import time
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

ANONYMOUS = "Anonymous"
BOT_NAME = "🤖 Bot"
BOT_FALLBACK_MESSAGE = "Sorry, I'm having trouble responding right now."

# Wire event names
EVENT_SET_NAME = "set username"
EVENT_CHAT = "chat message"
EVENT_ERROR = "error"

_clock_lock = threading.Lock()
_last_timestamp_ms = 0


def now_ms() -> int:
    """Milliseconds since epoch, never lower than the previous call in this process."""
    global _last_timestamp_ms
    with _clock_lock:
        _last_timestamp_ms = max(int(time.time() * 1000), _last_timestamp_ms)
        return _last_timestamp_ms


def resolve_name(name: Any) -> str:
    """Return ``name`` as a display name, or the anonymous sentinel if it is empty."""
    if name is None:
        return ANONYMOUS
    name = name if isinstance(name, str) else str(name)
    return name or ANONYMOUS


class ChatPayload(BaseModel):
    """Inbound ``chat message`` payload as sent by a client."""
    model_config = ConfigDict(extra="ignore")

    username: Optional[str] = None
    message: str = ""

    @field_validator("username", mode="before")
    @classmethod
    def _coerce_username(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @field_validator("message", mode="before")
    @classmethod
    def _coerce_message(cls, value: Any) -> Any:
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)

    @classmethod
    def parse(cls, data: Any) -> "ChatPayload":
        """Build a payload from raw event data.

        Dicts are validated field by field; any other value is taken as the
        message body of an anonymous sender.
        """
        if isinstance(data, dict):
            return cls.model_validate(data)
        if data is None:
            return cls()
        return cls(message=data if isinstance(data, str) else str(data))


class ChatMessage(BaseModel):
    """A chat line in flight between participants."""
    model_config = ConfigDict(frozen=True)

    sender_name: str = Field(default=ANONYMOUS, serialization_alias="username")
    body: str = Field(default="", serialization_alias="message")

    @classmethod
    def from_payload(cls, payload: ChatPayload) -> "ChatMessage":
        return cls(sender_name=resolve_name(payload.username), body=payload.message or "")

    def to_wire(self) -> dict:
        """Outbound ``chat message`` data: ``{"username": ..., "message": ...}``."""
        return self.model_dump(by_alias=True)


class MessageRecord(BaseModel):
    """Durable, append-only projection of one broadcast message."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    timestamp: int = Field(default_factory=now_ms, description="Milliseconds since epoch")
    sender_name: str
    body: str

    @classmethod
    def from_message(cls, message: ChatMessage) -> "MessageRecord":
        return cls(sender_name=message.sender_name, body=message.body)
