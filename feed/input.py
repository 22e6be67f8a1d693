"""Input adapters.

Translate raw keyboard keys, swipe gestures and text selections into the
abstract commands the feed controller understands, and route them.

The decision of what ``enter`` means lives here, not in the controller:
with an active text selection it explores the selection, otherwise it
deepens the current topic.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Optional, Union

from feed.models import Direction

if TYPE_CHECKING:
    from feed.controller import FeedController

logger = logging.getLogger(__name__)

#: Minimum drag distance, in pixels, on the dominant axis for a swipe.
SWIPE_THRESHOLD = 50
#: Selections this long or longer are treated as accidental.
MAX_SELECTION_LENGTH = 200


class Command(str, Enum):
    """Non-directional commands."""

    ENTER = "enter"
    ESCAPE = "escape"


InputCommand = Union[Direction, Command]

_KEY_COMMANDS: dict[str, InputCommand] = {
    "ArrowUp": Direction.UP,
    "ArrowDown": Direction.DOWN,
    "ArrowLeft": Direction.LEFT,
    "ArrowRight": Direction.RIGHT,
    "Enter": Command.ENTER,
    "Escape": Command.ESCAPE,
}


def key_to_command(key: str, in_text_field: bool = False) -> Optional[InputCommand]:
    """Map a DOM-style key name to a command.

    Keys typed into an input or textarea belong to that field and are
    ignored, as is any key without a binding.
    """
    if in_text_field:
        return None
    return _KEY_COMMANDS.get(key)


def classify_swipe(dx: float, dy: float, threshold: float = SWIPE_THRESHOLD) -> Optional[Direction]:
    """Turn a drag movement into a direction, or ``None`` if too short.

    The dominant axis wins; positive ``dx`` is right, positive ``dy`` is down.

    Examples:
        >>> classify_swipe(120, 30)
        <Direction.RIGHT: 'right'>
        >>> classify_swipe(10, -20) is None
        True
    """
    if abs(dx) < threshold and abs(dy) < threshold:
        return None
    if abs(dx) > abs(dy):
        return Direction.RIGHT if dx > 0 else Direction.LEFT
    return Direction.DOWN if dy > 0 else Direction.UP


def clean_selection(raw: Optional[str]) -> Optional[str]:
    """Return the trimmed selection if it is usable as a concept."""
    if not raw:
        return None
    text = raw.strip()
    if 0 < len(text) < MAX_SELECTION_LENGTH:
        return text
    return None


async def dispatch(
    controller: FeedController,
    command: InputCommand,
    selection: Optional[str] = None,
) -> None:
    """Route one command to the controller.

    Args:
        controller: The feed being driven.
        command: A direction, ``enter`` or ``escape``.
        selection: Raw text the reader currently has selected, if any.
    """
    if isinstance(command, Direction):
        controller.navigate(command)
        return

    if command is Command.ESCAPE:
        controller.handle_escape()
        return

    concept = clean_selection(selection)
    if concept is not None:
        logger.debug("Exploring selection %r", concept)
        await controller.explore_concept(concept)
    else:
        controller.navigate(Direction.RIGHT)
