"""Shared fixtures: an in-memory content service and a controller factory."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Optional

import pytest

from config.settings import Settings
from feed.controller import FeedController
from feed.models import Highlight, Mode, Topic, TopicBatch
from feed.persistence import MemoryStore
from feed.service import ContentServiceError

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_topic(n: int, highlights: tuple[str, ...] = (), content: Optional[str] = None) -> Topic:
    content = content or f"Body of topic {n}. " + " ".join(highlights)
    return Topic(
        id=f"t{n}",
        title=f"Topic number {n} headline",
        summary=f"Summary {n}",
        content=content,
        source="Example",
        source_url=f"https://example.com/{n}",
        timestamp=NOW,
        highlights=[
            Highlight(id=f"t{n}-h{i}", text=text) for i, text in enumerate(highlights)
        ],
    )


def make_batch(*ns: int, has_more: bool = True, mode: Mode = Mode.LIVE) -> TopicBatch:
    return TopicBatch(topics=[make_topic(n) for n in ns], mode=mode, has_more=has_more)


class FakeContentService:
    """Records every request; batches are served from a queue.

    Set ``gate`` to an ``asyncio.Event`` to hold requests in flight until
    the test releases them.
    """

    def __init__(self, *batches: TopicBatch) -> None:
        self.batches = list(batches)
        self.topic_calls: list[tuple[int, set[str]]] = []
        self.expansion_calls: list[tuple[str, str]] = []
        self.explanation_calls: list[tuple[str, str]] = []
        self.answer_calls: list[tuple[str, str, Optional[str]]] = []
        self.fail_topics = False
        self.fail_expansions: set[str] = set()
        self.fail_explanations = False
        self.fail_answers = False
        self.gate: Optional[asyncio.Event] = None
        self.closed = False

    async def _hold(self) -> None:
        if self.gate is not None:
            await self.gate.wait()

    async def fetch_topics(self, count, exclude_ids=None):
        self.topic_calls.append((count, set(exclude_ids or ())))
        await self._hold()
        if self.fail_topics:
            raise ContentServiceError("topics unavailable")
        if self.batches:
            return self.batches.pop(0)
        return TopicBatch(topics=[], mode=Mode.DEMO, has_more=True)

    async def fetch_expansion(self, topic_id, title, content):
        self.expansion_calls.append((topic_id, content))
        await self._hold()
        if topic_id in self.fail_expansions:
            raise ContentServiceError("expand failed")
        return f"deep dive for {topic_id}"

    async def fetch_explanation(self, concept, topic_id, topic_context):
        self.explanation_calls.append((concept, topic_id))
        await self._hold()
        if self.fail_explanations:
            raise ContentServiceError("explore failed")
        return f"explanation of {concept.strip().lower()}"

    async def fetch_answer(self, question, topic_id, selected_text, topic_context):
        self.answer_calls.append((question, topic_id, selected_text))
        await self._hold()
        if self.fail_answers:
            raise ContentServiceError("ask failed")
        return f"answer to {question}"

    async def aclose(self):
        self.closed = True


class BrokenStore:
    """A store whose every operation fails."""

    def get(self, key):
        raise OSError("disk unavailable")

    def set(self, key, value):
        raise OSError("disk unavailable")

    def remove(self, key):
        raise OSError("disk unavailable")


def feed_settings(**overrides) -> Settings:
    values = dict(
        anthropic_api_key="",
        batch_size=3,
        preload_count=2,
        load_more_threshold=2,
        max_empty_batches=3,
        enable_pagination=False,
        enable_question_overlay=True,
        checkpoint_ttl_seconds=3600,
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def build(store):
    """Return a factory ``build(service, **settings) -> FeedController``."""

    def _build(service: FakeContentService, clock=lambda: NOW, **overrides) -> FeedController:
        return FeedController(service, store, settings=feed_settings(**overrides), clock=clock)

    return _build
