"""Registry of live chat connections.

SessionEntry — one live connection with its display name and outbound queue
SessionRegistry — maps connection_id → SessionEntry
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .chat_models import ANONYMOUS, resolve_name

logger = logging.getLogger(__name__)


@dataclass
class SessionEntry:
    """A live connection with its display name and pending outbound events."""
    connection_id: str
    display_name: str = ANONYMOUS
    outbox: asyncio.Queue = field(default_factory=asyncio.Queue)

    def deliver(self, event: dict) -> None:
        """Queue an outbound event without suspending."""
        self.outbox.put_nowait(event)


class SessionRegistry:
    """Maps connection_id → SessionEntry.

    Only touched from the event loop thread, so no locking is needed.
    """

    def __init__(self):
        self._sessions: Dict[str, SessionEntry] = {}

    def on_connect(self, connection_id: str) -> SessionEntry:
        entry = SessionEntry(connection_id=connection_id)
        self._sessions[connection_id] = entry
        logger.info(f"[REGISTRY] A user connected: {connection_id}")
        return entry

    def set_name(self, connection_id: str, name: Any) -> None:
        entry = self._sessions.get(connection_id)
        if entry is None:
            logger.debug(f"[REGISTRY] Ignoring name for unknown connection {connection_id}")
            return
        entry.display_name = resolve_name(name)
        logger.info(f"[REGISTRY] Username set: {entry.display_name} ({connection_id})")

    def on_disconnect(self, connection_id: str) -> Optional[SessionEntry]:
        entry = self._sessions.pop(connection_id, None)
        if entry:
            logger.info(f"[REGISTRY] User disconnected: {entry.display_name} ({connection_id})")
        return entry

    def lookup(self, connection_id: str) -> str:
        entry = self._sessions.get(connection_id)
        return entry.display_name if entry else ANONYMOUS

    def sessions(self) -> List[SessionEntry]:
        """Snapshot of the live sessions in connect order."""
        return list(self._sessions.values())

    def __contains__(self, connection_id: str) -> bool:
        return connection_id in self._sessions

    @property
    def active_count(self) -> int:
        return len(self._sessions)
