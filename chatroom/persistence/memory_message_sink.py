import logging
import threading
from typing import List

from ..chat_models import MessageRecord
from .message_sink import MessageSink, MessageSinkError

logger = logging.getLogger(__name__)


class MemoryMessageSink(MessageSink):
    """Message sink with in-memory storage."""

    def __init__(self, *, max_records: int | None = None):
        super().__init__(name="memory")
        self.max_records = max_records
        self._records: List[MessageRecord] = []
        self._ids: set[str] = set()
        self._lock = threading.Lock()

    async def append(self, record: MessageRecord) -> None:
        with self._lock:
            if record.id in self._ids:
                raise MessageSinkError(f"Duplicate message id {record.id}")
            self._records.append(record)
            self._ids.add(record.id)
            if self.max_records is not None and len(self._records) > self.max_records:
                dropped = self._records.pop(0)
                self._ids.discard(dropped.id)
        logger.debug(f"[SINK] Stored message {record.id} from {record.sender_name}")

    @property
    def records(self) -> List[MessageRecord]:
        """Snapshot of the stored records in append order."""
        with self._lock:
            return list(self._records)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
            self._ids.clear()
