"""
Pydantic models shared across the Vibescroll feed.

Wire names follow the JSON API (``sourceUrl``, ``startIndex``, …); Python
code uses the snake_case field names. Both spellings are accepted on input.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class TopicCategory(str, Enum):
    """Fixed category taxonomy for feed topics."""

    NEWS = "news"
    TECH = "tech"
    SCIENCE = "science"
    FINANCE = "finance"
    CULTURE = "culture"
    POLITICS = "politics"
    HEALTH = "health"
    SPORTS = "sports"
    GENERAL = "general"


class Depth(str, Enum):
    """Disclosure level of the current topic, shallowest first."""

    SUMMARY = "summary"
    EXPANDED = "expanded"
    DETAIL = "detail"


class Direction(str, Enum):
    """Abstract navigation command emitted by the input adapters."""

    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"


class Mode(str, Enum):
    """Whether a batch came from live services or bundled demo content."""

    LIVE = "live"
    DEMO = "demo"


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class Highlight(_WireModel):
    """A phrase inside a topic's content flagged as explorable.

    ``start_index``/``end_index`` are ``None`` until the phrase has been
    located in the content. The legacy ``(0, 0)`` sentinel is read as
    "not located".
    """

    id: str
    text: str
    start_index: Optional[int] = None
    end_index: Optional[int] = None

    @model_validator(mode="before")
    @classmethod
    def _unset_sentinel(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        start = data.get("startIndex", data.get("start_index"))
        end = data.get("endIndex", data.get("end_index"))
        if data.get("text") and start == 0 and end == 0:
            offset_keys = ("startIndex", "start_index", "endIndex", "end_index")
            return {k: v for k, v in data.items() if k not in offset_keys}
        return data

    @property
    def is_located(self) -> bool:
        return self.start_index is not None and self.end_index is not None


class Topic(_WireModel):
    """One feed item. Immutable once received."""

    id: str
    title: str
    summary: str
    content: str
    source: str = ""
    source_url: str = ""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    category: TopicCategory = TopicCategory.GENERAL
    highlights: list[Highlight] = Field(default_factory=list)


class TopicBatch(_WireModel):
    """Response of a topic fetch."""

    topics: list[Topic] = Field(default_factory=list)
    mode: Mode = Mode.DEMO
    has_more: bool = True


class FeedSnapshot(_WireModel):
    """Persisted feed position: the loaded topics and where the reader was."""

    topics: list[Topic]
    current_index: int = 0
    timestamp: datetime
    mode: Mode = Mode.DEMO
