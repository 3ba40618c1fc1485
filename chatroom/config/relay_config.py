import os
from dataclasses import dataclass
from typing import ClassVar, Mapping, Optional

from ..chat_models import BOT_NAME


def _env_float(env: Mapping[str, str], key: str) -> Optional[float]:
    value = env.get(key)
    if value in (None, ""):
        return None
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{key} must be a number, got {value!r}")


def _env_int(env: Mapping[str, str], key: str, default: Optional[int]) -> Optional[int]:
    value = env.get(key)
    if value is None:
        return default
    if value == "" or value.lower() == "none":
        return None
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got {value!r}")


@dataclass
class RelayConfig:
    """Defines the runtime configuration of the chat relay."""
    SINK_MEMORY: ClassVar[str] = "memory"
    SINK_MONGODB: ClassVar[str] = "mongodb"
    SINK_NONE: ClassVar[str] = "none"
    SINK_TYPES: ClassVar[set[str]] = {SINK_MEMORY, SINK_MONGODB, SINK_NONE}

    host: str = "0.0.0.0"
    """Interface the HTTP server binds to."""
    port: int = 3000
    """HTTP server port."""
    log_level: str = "INFO"
    """Root log level passed to logging.basicConfig."""
    static_dir: Optional[str] = None
    """Directory with the browser client. None uses the packaged assets."""

    bot_name: str = BOT_NAME
    """Sender name of bot replies."""
    bot_trigger: str = "@bot"
    """Command token that addresses the bot, matched case-insensitively."""

    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o"
    openai_base_url: Optional[str] = None
    openai_api_type: Optional[str] = None
    openai_api_version: Optional[str] = None
    openai_timeout: Optional[float] = None
    """Request timeout in seconds for the responder client. None keeps the client default."""

    message_sink: str = SINK_MEMORY
    """Which sink stores message records: "memory", "mongodb" or "none"."""
    memory_max_records: Optional[int] = 1000
    """Records the memory sink keeps before dropping the oldest. None keeps everything."""
    mongo_uri: Optional[str] = None
    mongo_db: str = "chatroom"
    mongo_collection: str = "ChatMessages"

    def __post_init__(self):
        if self.message_sink not in self.SINK_TYPES:
            raise ValueError(f"Unknown message sink {self.message_sink!r}, expected one of {sorted(self.SINK_TYPES)}")
        if self.message_sink == self.SINK_MONGODB and not self.mongo_uri:
            raise ValueError("MONGODB_CONNECTION is required for the mongodb message sink")
        if self.memory_max_records is not None and self.memory_max_records < 1:
            raise ValueError("MEMORY_SINK_MAX_RECORDS must be a positive integer")
        if not self.bot_trigger.strip():
            raise ValueError("The bot trigger must not be empty")

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "RelayConfig":
        """Build a configuration from environment variables.

        :param env: Mapping to read from, defaults to ``os.environ``
        :return: The populated configuration
        :raises ValueError: If a variable holds an invalid value
        """
        env = os.environ if env is None else env
        mongo_uri = env.get("MONGODB_CONNECTION") or None
        default_sink = cls.SINK_MONGODB if mongo_uri else cls.SINK_MEMORY
        try:
            port = int(env.get("PORT", "3000"))
        except ValueError:
            raise ValueError(f"PORT must be an integer, got {env.get('PORT')!r}")
        return cls(
            host=env.get("HOST", "0.0.0.0"),
            port=port,
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
            static_dir=env.get("STATIC_DIR") or None,
            bot_name=env.get("BOT_NAME") or BOT_NAME,
            bot_trigger=env.get("BOT_TRIGGER", "@bot"),
            openai_api_key=env.get("OPENAI_API_KEY") or None,
            openai_model=env.get("OPENAI_MODEL", "gpt-4o"),
            openai_base_url=env.get("OPENAI_API_BASE") or None,
            openai_api_type=env.get("OPENAI_API_TYPE") or None,
            openai_api_version=env.get("OPENAI_API_VERSION") or None,
            openai_timeout=_env_float(env, "OPENAI_TIMEOUT"),
            message_sink=env.get("MESSAGE_SINK", default_sink).lower(),
            memory_max_records=_env_int(env, "MEMORY_SINK_MAX_RECORDS", 1000),
            mongo_uri=mongo_uri,
            mongo_db=env.get("MONGODB_DATABASE", "chatroom"),
            mongo_collection=env.get("MONGODB_COLLECTION", "ChatMessages"),
        )
