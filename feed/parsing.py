"""Parse-and-validate step for Claude's topic JSON.

Claude is asked to return a JSON object but sometimes wraps it in a
markdown fence or adds a sentence around it. ``parse_topic_response``
extracts the object, validates it against ``RawTopic`` and returns a tagged
result so callers can degrade to "no topic" without try/except around
every call.
"""

from __future__ import annotations

import json
import logging
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union

from pydantic import BaseModel, Field, ValidationError

from feed.categorizer import coerce_category
from feed.highlights import resolve_highlights
from feed.models import Highlight, Topic

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)


class RawHighlight(BaseModel):
    """A highlight as Claude returns it: the phrase and why it matters."""

    text: str
    reason: str = ""


class RawTopic(BaseModel):
    """The JSON object Claude is asked to produce for one article."""

    title: str
    summary: str
    content: str
    category: str = "general"
    highlights: list[RawHighlight] = Field(default_factory=list)


@dataclass(frozen=True)
class ParseOk:
    raw: RawTopic


@dataclass(frozen=True)
class ParseError:
    message: str


ParseResult = Union[ParseOk, ParseError]


def extract_json(text: str) -> str:
    """Return the JSON payload inside *text*, unwrapping a markdown fence."""
    match = _FENCE_RE.search(text)
    if match:
        return match.group(1).strip()

    # Fall back to the outermost braces when prose surrounds the object
    start, end = text.find("{"), text.rfind("}")
    if start >= 0 and end > start:
        return text[start:end + 1]
    return text.strip()


def parse_topic_response(text: str) -> ParseResult:
    """Parse Claude's reply into a ``RawTopic``.

    Returns:
        ``ParseOk`` with the validated object, or ``ParseError`` describing
        why the reply was unusable. Never raises.
    """
    if not text or not text.strip():
        return ParseError("empty response")

    try:
        data = json.loads(extract_json(text))
    except json.JSONDecodeError as exc:
        return ParseError(f"invalid JSON: {exc.msg}")

    if not isinstance(data, dict):
        return ParseError(f"expected a JSON object, got {type(data).__name__}")

    try:
        return ParseOk(RawTopic.model_validate(data))
    except ValidationError as exc:
        return ParseError(f"schema mismatch: {exc.error_count()} error(s)")


def build_topic(
    raw: RawTopic,
    url: str,
    source: str,
    published: Optional[str] = None,
) -> Topic:
    """Assemble a ``Topic`` from a parsed article and its search metadata.

    Highlight offsets are located here; phrases Claude paraphrased instead
    of quoting are dropped.
    """
    highlights = [
        Highlight(id=f"{url or 'topic'}-h-{idx}", text=h.text)
        for idx, h in enumerate(raw.highlights)
        if h.text.strip()
    ]
    return Topic(
        id=f"topic-{uuid.uuid4().hex[:12]}",
        title=raw.title,
        summary=raw.summary,
        content=raw.content,
        source=source,
        source_url=url,
        timestamp=_parse_timestamp(published),
        category=coerce_category(raw.category, url, raw.title, raw.content),
        highlights=resolve_highlights(raw.content, highlights),
    )


def _parse_timestamp(value: Optional[str]) -> datetime:
    if value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
        except ValueError:
            logger.debug("Unparseable publication date %r", value)
    return datetime.now(timezone.utc)
