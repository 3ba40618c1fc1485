from .message_sink import MessageSink, MessageSinkError, NullMessageSink
from .memory_message_sink import MemoryMessageSink


def __getattr__(name):
    """Lazy imports for optional dependencies."""
    if name == "MongoDBMessageSink":
        from .mongodb_message_sink import MongoDBMessageSink
        return MongoDBMessageSink
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'MessageSink',
    'MessageSinkError',
    'NullMessageSink',
    'MemoryMessageSink',
    'MongoDBMessageSink',
]
