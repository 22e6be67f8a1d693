"""Deduplication of articles and topics.

Responsibilities:
- Deduplicate raw search results by URL before they are rewritten
- Deduplicate raw search results by a truncated title key (the same story
  syndicated under several URLs)
- Merge a freshly fetched topic batch into the feed without re-inserting
  topics the reader has already seen

Title keys are approximate: two different headlines sharing their first
characters collide, and a story reworded at the start slips through.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from feed.models import Topic

logger = logging.getLogger(__name__)

#: Characters of the lower-cased title used as the similarity key for topics.
TOPIC_TITLE_KEY_LENGTH = 30
#: Longer key for raw search results, whose titles carry less boilerplate.
RESULT_TITLE_KEY_LENGTH = 50


def title_key(title: str, length: int = TOPIC_TITLE_KEY_LENGTH) -> str:
    """Return the truncated, lower-cased similarity key for *title*."""
    return title.strip().lower()[:length]


# ── Search results ─────────────────────────────────────────────────────────────


def deduplicate(results: list[object]) -> list[object]:
    """Remove duplicate search results by URL, keeping the first occurrence.

    Normalises URLs by stripping trailing slashes and lowercasing before
    comparison so that ``https://example.com/`` and ``https://example.com``
    are treated as the same resource. Results without a URL are dropped.

    Args:
        results: List of ``SearchResult`` objects (typed as ``object`` to
            avoid circular import; expects a ``.url`` attribute).

    Returns:
        Deduplicated list in original order.
    """
    seen: set[str] = set()
    unique: list[object] = []

    for result in results:
        url: str = getattr(result, "url", "") or ""
        normalised = url.rstrip("/").lower()
        if normalised and normalised not in seen:
            seen.add(normalised)
            unique.append(result)

    return unique


def deduplicate_titles(results: list[object]) -> list[object]:
    """Remove search results whose title key was already seen."""
    seen: set[str] = set()
    unique: list[object] = []

    for result in results:
        key = title_key(getattr(result, "title", "") or "", RESULT_TITLE_KEY_LENGTH)
        if key not in seen:
            seen.add(key)
            unique.append(result)

    return unique


# ── Feed batches ───────────────────────────────────────────────────────────────


def new_topics(existing: Iterable[Topic], incoming: Iterable[Topic]) -> list[Topic]:
    """Return the topics of *incoming* that are genuinely new.

    A topic is dropped when its ``id`` or its title key matches a topic
    already in the feed, or one earlier in the same batch.

    Examples:
        >>> [t.id for t in new_topics([a], [a, b, b_copy])]
        ['b']
    """
    seen_ids: set[str] = set()
    seen_titles: set[str] = set()
    for topic in existing:
        seen_ids.add(topic.id)
        seen_titles.add(title_key(topic.title))

    fresh: list[Topic] = []
    for topic in incoming:
        key = title_key(topic.title)
        if topic.id in seen_ids or key in seen_titles:
            logger.debug("Skipping duplicate topic id=%s title=%r", topic.id, topic.title)
            continue
        seen_ids.add(topic.id)
        seen_titles.add(key)
        fresh.append(topic)

    return fresh
