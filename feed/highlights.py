"""Highlight resolution and content segmentation.

Highlights produced by the topic rewrite step usually arrive without
offsets: the model returns the phrase, not its position. Before a highlight
can be rendered as a clickable span its offsets are located by searching
for the phrase in the topic content. Phrases that cannot be found are
dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from feed.models import Highlight

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Segment:
    """A run of topic content, optionally bound to the highlight it renders."""

    text: str
    highlight: Optional[Highlight] = None

    @property
    def is_highlight(self) -> bool:
        return self.highlight is not None


def resolve_highlight(content: str, highlight: Highlight) -> Optional[Highlight]:
    """Return *highlight* with offsets into *content*, or ``None`` if absent.

    Already-located highlights are returned unchanged.

    Examples:
        >>> h = Highlight(id="h1", text="quantum error correction")
        >>> resolve_highlight(
        ...     "Scientists discovered a new quantum error correction method.", h
        ... ).start_index
        28
    """
    if highlight.is_located:
        return highlight
    if not highlight.text:
        return None

    found = content.find(highlight.text)
    if found < 0:
        logger.debug("Highlight %r not found in content, dropping", highlight.text)
        return None

    return highlight.model_copy(
        update={"start_index": found, "end_index": found + len(highlight.text)}
    )


def resolve_highlights(content: str, highlights: list[Highlight]) -> list[Highlight]:
    """Resolve every highlight, dropping the ones not present in *content*."""
    resolved: list[Highlight] = []
    for highlight in highlights:
        located = resolve_highlight(content, highlight)
        if located is not None:
            resolved.append(located)
    return resolved


def segment_content(content: str, highlights: list[Highlight]) -> list[Segment]:
    """Split *content* into plain and highlighted segments in reading order.

    A highlight overlapping one that starts earlier is skipped.
    """
    located = sorted(
        resolve_highlights(content, highlights),
        key=lambda h: h.start_index,
    )
    if not located:
        return [Segment(text=content)]

    segments: list[Segment] = []
    cursor = 0
    for highlight in located:
        start, end = highlight.start_index, highlight.end_index
        if start < cursor:
            continue
        if start > cursor:
            segments.append(Segment(text=content[cursor:start]))
        segments.append(Segment(text=content[start:end], highlight=highlight))
        cursor = end

    if cursor < len(content):
        segments.append(Segment(text=content[cursor:]))
    return segments
