from abc import ABC, abstractmethod

from ..chat_models import MessageRecord


class MessageSinkError(RuntimeError):
    """Raised when a sink could not store a message record."""


class MessageSink(ABC):
    """Base class for write-only message stores."""

    def __init__(self, *, name: str):
        self.name = name

    @abstractmethod
    async def append(self, record: MessageRecord) -> None:
        """Store one message record.

        :param record: The record to append
        :raises MessageSinkError: If the record could not be stored
        """
        raise NotImplementedError("Subclasses must implement append")

    async def close(self) -> None:
        """Release connections held by the sink. The default implementation does nothing."""
        pass


class NullMessageSink(MessageSink):
    """Sink that discards every record."""

    def __init__(self):
        super().__init__(name="none")

    async def append(self, record: MessageRecord) -> None:
        pass
