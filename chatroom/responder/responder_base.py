"""Base interface for automated responders."""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


class ResponderFailure(Exception):
    """Any failure of a responder call: network, quota, malformed or empty response."""


@dataclass(frozen=True)
class ResponderResult:
    """Outcome of one responder call: either a completion text or a failure."""
    text: Optional[str] = None
    error: Optional[ResponderFailure] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, text: str) -> "ResponderResult":
        return cls(text=text)

    @classmethod
    def failure(cls, error: ResponderFailure) -> "ResponderResult":
        return cls(error=error)


class Responder(ABC):
    """Base class for responders producing a completion text from a prompt."""

    def __init__(self, name: str, label: str):
        """Initialize responder.

        :param name: The responder name, "openai", "unavailable", etc.
        :param label: Human readable label, "OpenAI", etc.
        """
        self.name = name
        self.label = label

    @abstractmethod
    async def _complete_text(self, prompt: str) -> str:
        """Return the completion for ``prompt``. May raise any exception."""
        pass

    async def complete(self, prompt: str) -> ResponderResult:
        """Ask the responder for a completion.

        Every error raised by the underlying client is collapsed into a
        :class:`ResponderFailure` result; this method does not raise.
        """
        try:
            text = await self._complete_text(prompt)
        except ResponderFailure as e:
            return ResponderResult.failure(e)
        except Exception as e:
            logger.debug(f"[BOT] {self.label} call raised {type(e).__name__}", exc_info=True)
            failure = ResponderFailure(f"{type(e).__name__}: {e}")
            failure.__cause__ = e
            return ResponderResult.failure(failure)
        if not text or not text.strip():
            return ResponderResult.failure(ResponderFailure(f"{self.label} returned an empty completion"))
        return ResponderResult.success(text)

    async def close(self) -> None:
        pass


class UnavailableResponder(Responder):
    """Responder used when no backend is configured; every call fails."""

    def __init__(self, reason: str = "No responder configured"):
        super().__init__("unavailable", "Unavailable")
        self.reason = reason

    async def _complete_text(self, prompt: str) -> str:
        raise ResponderFailure(self.reason)
