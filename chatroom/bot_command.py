"""Detection of commands addressed to the bot."""
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

DEFAULT_TRIGGER = "@bot"


@dataclass(frozen=True)
class BotCommand:
    """A chat line addressed to the bot."""
    trigger: str
    prompt: str


@lru_cache(maxsize=16)
def _trigger_pattern(trigger: str) -> re.Pattern:
    return re.compile(rf"^{re.escape(trigger)}(.*)$", re.IGNORECASE | re.DOTALL)


def parse_bot_command(body: str, trigger: str = DEFAULT_TRIGGER) -> Optional[BotCommand]:
    """Return the bot command in ``body``, or None if the message is plain chat.

    The body is trimmed before matching; the prompt is the trimmed remainder
    after the trigger and may be empty.
    """
    if not body:
        return None
    match = _trigger_pattern(trigger).match(body.strip())
    if not match:
        return None
    return BotCommand(trigger=trigger, prompt=match.group(1).strip())
