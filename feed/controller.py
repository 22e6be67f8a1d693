"""
Feed controller: the single owner of feed state.

The controller fetches and paginates topics, tracks the reader's position
and depth, speculatively prefetches deep dives and concept explanations,
and checkpoints the feed so a reload resumes where the reader left off.

Concurrency
───────────
Everything runs on one asyncio event loop. Navigation methods are plain
synchronous calls that never wait on the network; the network work they
trigger runs as background tasks the controller tracks. Completions write
into the live ``FeedState`` one key at a time, so racing responses merge
instead of clobbering each other. A response for a topic or concept the
reader has moved past is still stored: it warms the cache.

Failures never escape the controller. Topic loads record ``state.error``
(and halt navigation until ``retry()``), concept and question requests
fall back to inline text, and prefetches are logged and dropped.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union

from pydantic import ValidationError

from config.settings import Settings
from feed.dedup import new_topics
from feed.models import Depth, Direction, FeedSnapshot, Highlight, Mode, Topic
from feed.persistence import KeyValueStore
from feed.service import ContentService

logger = logging.getLogger(__name__)

CHECKPOINT_KEY = "vibescroll:feed-state"
CONCEPT_FALLBACK = 'Unable to research "{concept}" at this time.'
ANSWER_FALLBACK = "Sorry, I couldn't find an answer to that question."

_DEEPER: dict[Depth, Depth] = {Depth.SUMMARY: Depth.EXPANDED, Depth.EXPANDED: Depth.DETAIL}
_SHALLOWER: dict[Depth, Depth] = {Depth.DETAIL: Depth.EXPANDED, Depth.EXPANDED: Depth.SUMMARY}

_INITIAL_LOAD = "initial"
_MORE_LOAD = "more"


def normalize_concept(text: str) -> str:
    """Cache key for a concept: trimmed and lower-cased."""
    return text.strip().lower()


@dataclass
class QuestionState:
    """The free-form question overlay."""

    is_open: bool = False
    selected_text: Optional[str] = None
    question: Optional[str] = None
    answer: Optional[str] = None
    is_loading: bool = False


@dataclass
class FeedState:
    """Everything the presentation layer renders. Mutated only by the controller."""

    topics: list[Topic] = field(default_factory=list)
    current_index: int = 0
    depth: Depth = Depth.SUMMARY
    direction: Direction = Direction.DOWN
    expanded_content: dict[str, str] = field(default_factory=dict)
    detail_content: dict[str, str] = field(default_factory=dict)
    concept_cache: dict[str, str] = field(default_factory=dict)
    current_concept: Optional[str] = None
    concept_content: Optional[str] = None
    is_exploring_concept: bool = False
    question: QuestionState = field(default_factory=QuestionState)
    mode: Mode = Mode.DEMO
    has_more: bool = True
    is_loading: bool = False
    is_loading_more: bool = False
    error: Optional[str] = None

    @property
    def current_topic(self) -> Optional[Topic]:
        if 0 <= self.current_index < len(self.topics):
            return self.topics[self.current_index]
        return None


class FeedController:
    """Drives a feed session.

    Must be used from inside a running event loop: navigation schedules
    background tasks with ``asyncio.create_task``.

    Args:
        service: Where topics and deep-dive text come from.
        store: Where the feed checkpoint is kept.
        settings: Feed tuning and feature flags.
        clock: Returns the current aware datetime; injectable for tests.
    """

    def __init__(
        self,
        service: ContentService,
        store: KeyValueStore,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.service = service
        self.store = store
        self.settings = settings or Settings()
        self._now = clock or (lambda: datetime.now(timezone.utc))
        self.state = FeedState()

        # Session-scoped dedup sets, cleared only by a full reset
        self._prefetched: set[str] = set()
        self._concept_inflight: set[str] = set()

        self._expansions: dict[str, asyncio.Task] = {}
        self._details: dict[str, asyncio.Task] = {}
        self._explanations: dict[str, asyncio.Task] = {}
        self._tasks: set[asyncio.Task] = set()

        # Bumped whenever an overlay is replaced or dismissed, so a late
        # response can tell it no longer owns the overlay.
        self._concept_generation = 0
        self._question_generation = 0

        self._empty_batches = 0
        self._failed_load: Optional[str] = None

    # ── Accessors ──────────────────────────────────────────────────────────

    @property
    def current_topic(self) -> Optional[Topic]:
        return self.state.current_topic

    @property
    def current_expanded(self) -> Optional[str]:
        topic = self.current_topic
        return self.state.expanded_content.get(topic.id) if topic else None

    @property
    def current_detail(self) -> Optional[str]:
        topic = self.current_topic
        return self.state.detail_content.get(topic.id) if topic else None

    def _find(self, topic_id: str) -> Optional[Topic]:
        return next((t for t in self.state.topics if t.id == topic_id), None)

    # ── Task bookkeeping ───────────────────────────────────────────────────

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Background feed task failed", exc_info=task.exception())

    async def wait_idle(self) -> None:
        """Wait until every background request has completed."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        await self.wait_idle()
        await self.service.aclose()

    # ── Lifecycle ──────────────────────────────────────────────────────────

    async def initialize(self) -> None:
        """Resume a fresh checkpoint, or fetch the first batch."""
        if self.restore():
            self._after_topics_changed()
            return
        await self.fetch_topics()

    def restore(self) -> bool:
        """Hydrate topics and position from the checkpoint if it is fresh.

        Stale or unreadable checkpoints are removed. Returns True when the
        feed was hydrated.
        """
        try:
            raw = self.store.get(CHECKPOINT_KEY)
        except Exception:
            logger.exception("Failed to read feed checkpoint")
            return False
        if raw is None:
            return False

        try:
            snapshot = FeedSnapshot.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning("Discarding corrupt feed checkpoint: %s", exc.error_count())
            self._forget_checkpoint()
            return False

        saved_at = snapshot.timestamp
        if saved_at.tzinfo is None:
            saved_at = saved_at.replace(tzinfo=timezone.utc)
        age = self._now() - saved_at
        if age >= timedelta(seconds=self.settings.checkpoint_ttl_seconds) or not snapshot.topics:
            logger.info("Discarding feed checkpoint saved %s ago", age)
            self._forget_checkpoint()
            return False

        state = self.state
        state.topics = list(snapshot.topics)
        state.current_index = min(max(snapshot.current_index, 0), len(state.topics) - 1)
        state.depth = Depth.SUMMARY
        state.mode = snapshot.mode
        state.is_loading = False
        state.error = None
        logger.info(
            "Restored %d topics at index %d from checkpoint",
            len(state.topics), state.current_index,
        )
        return True

    def checkpoint(self) -> None:
        """Save topics and position. Failures are logged, never raised."""
        state = self.state
        if not state.topics:
            return
        snapshot = FeedSnapshot(
            topics=state.topics,
            current_index=state.current_index,
            timestamp=self._now(),
            mode=state.mode,
        )
        try:
            self.store.set(CHECKPOINT_KEY, snapshot.model_dump_json(by_alias=True))
        except Exception:
            logger.exception("Failed to save feed checkpoint")

    def _forget_checkpoint(self) -> None:
        try:
            self.store.remove(CHECKPOINT_KEY)
        except Exception:
            logger.exception("Failed to remove feed checkpoint")

    # ── Topic loading ──────────────────────────────────────────────────────

    async def fetch_topics(self) -> None:
        """Replace the feed with a fresh batch (a full reset)."""
        state = self.state
        state.is_loading = True
        state.error = None

        try:
            batch = await self.service.fetch_topics(self.settings.batch_size)
        except Exception as exc:
            logger.exception("Error fetching topics")
            state.is_loading = False
            state.error = str(exc) or "Failed to fetch topics"
            self._failed_load = _INITIAL_LOAD
            return

        self._prefetched.clear()
        self._concept_inflight.clear()
        self._empty_batches = 0
        self._failed_load = None

        state.topics = new_topics([], batch.topics)
        state.current_index = 0
        state.depth = Depth.SUMMARY
        state.direction = Direction.DOWN
        state.mode = batch.mode
        state.has_more = batch.has_more
        state.is_loading = False
        self._clear_concept()

        logger.info("Loaded %d topics (mode=%s)", len(state.topics), state.mode.value)
        self.checkpoint()
        self._after_topics_changed()

    refetch = fetch_topics

    async def load_more(self) -> None:
        """Append the next batch unless one is already loading."""
        if self.state.is_loading_more:
            return
        self.state.is_loading_more = True
        await self._load_more()

    async def _load_more(self) -> None:
        state = self.state
        try:
            batch = await self.service.fetch_topics(
                self.settings.batch_size,
                exclude_ids={t.id for t in state.topics},
            )
        except Exception as exc:
            logger.exception("Error loading more topics")
            state.error = str(exc) or "Failed to load more topics"
            self._failed_load = _MORE_LOAD
            return
        finally:
            state.is_loading_more = False

        self._failed_load = None
        fresh = new_topics(state.topics, batch.topics)
        state.topics.extend(fresh)
        state.mode = batch.mode
        state.has_more = batch.has_more

        if fresh:
            self._empty_batches = 0
        else:
            self._empty_batches += 1
            if self._empty_batches >= self.settings.max_empty_batches:
                logger.info("No new topics in %d batches, stopping pagination", self._empty_batches)
                state.has_more = False

        logger.info("Appended %d new topics (total %d)", len(fresh), len(state.topics))
        self.checkpoint()
        self._after_topics_changed()

    async def retry(self) -> None:
        """Clear the error state and re-run the load that failed."""
        failed = self._failed_load
        self.state.error = None
        if failed == _MORE_LOAD and self.state.topics:
            await self.load_more()
        else:
            await self.fetch_topics()

    def _maybe_load_more(self) -> None:
        state = self.state
        if not self.settings.enable_pagination:
            return
        if not state.topics or not state.has_more or state.is_loading_more or state.error:
            return
        if state.current_index >= len(state.topics) - self.settings.load_more_threshold:
            logger.debug(
                "Loading more topics at index %d of %d", state.current_index, len(state.topics),
            )
            state.is_loading_more = True
            self._spawn(self._load_more())

    def _after_topics_changed(self) -> None:
        self._prefetch()
        self._maybe_load_more()

    # ── Navigation ─────────────────────────────────────────────────────────

    def navigate(self, direction: Union[Direction, str]) -> None:
        """Apply one directional command. Out-of-range moves are no-ops."""
        direction = Direction(direction)
        state = self.state

        if state.error is not None or not state.topics:
            logger.debug("Ignoring %s: feed not navigable", direction.value)
            return

        if direction is Direction.LEFT and state.current_concept is not None:
            self.clear_concept_exploration()
            return

        if direction is Direction.DOWN:
            if state.current_index + 1 < len(state.topics):
                self._move_to(state.current_index + 1, Direction.DOWN)
        elif direction is Direction.UP:
            if state.current_index > 0:
                self._move_to(state.current_index - 1, Direction.UP)
        elif direction is Direction.RIGHT:
            deeper = _DEEPER.get(state.depth)
            if deeper is not None:
                self._set_depth(deeper)
        else:
            shallower = _SHALLOWER.get(state.depth)
            if shallower is not None:
                self._set_depth(shallower)

    def reset_depth(self) -> None:
        self.state.depth = Depth.SUMMARY

    def handle_escape(self) -> None:
        """Dismiss the topmost overlay: concept, then question, then depth."""
        if self.state.current_concept is not None:
            self.clear_concept_exploration()
        elif self.state.question.is_open:
            self.close_question()
        else:
            self.reset_depth()

    def _move_to(self, index: int, direction: Direction) -> None:
        state = self.state
        state.current_index = index
        state.depth = Depth.SUMMARY
        state.direction = direction
        self._clear_concept()

        self.checkpoint()
        self._prefetch()
        self._maybe_load_more()

    def _set_depth(self, depth: Depth) -> None:
        self.state.depth = depth
        topic = self.current_topic
        if topic is None:
            return
        if depth is Depth.EXPANDED and topic.id not in self.state.expanded_content:
            self._spawn(self.expand_topic(topic.id))
        elif depth is Depth.DETAIL and topic.id not in self.state.detail_content:
            self._spawn(self.detail_topic(topic.id))

    # ── Deep dives ─────────────────────────────────────────────────────────

    async def expand_topic(self, topic_id: str) -> Optional[str]:
        """Return the deep dive for a topic, fetching it if needed.

        Shares the request with a prefetch already in flight. Returns
        ``None`` if the topic is unknown or the fetch failed.
        """
        cached = self.state.expanded_content.get(topic_id)
        if cached is not None:
            return cached
        topic = self._find(topic_id)
        if topic is None:
            return None
        return await asyncio.shield(self._expansion_task(topic))

    def _expansion_task(self, topic: Topic) -> asyncio.Task:
        task = self._expansions.get(topic.id)
        if task is None:
            task = self._spawn(self._fetch_expansion(topic))
            self._expansions[topic.id] = task
        return task

    async def _fetch_expansion(self, topic: Topic) -> Optional[str]:
        try:
            content = await self.service.fetch_expansion(topic.id, topic.title, topic.content)
        except Exception:
            logger.warning("Deep dive fetch failed for topic_id=%s", topic.id, exc_info=True)
            return None
        finally:
            self._expansions.pop(topic.id, None)

        self.state.expanded_content[topic.id] = content
        return content

    async def detail_topic(self, topic_id: str) -> Optional[str]:
        """Return the second-level deep dive, expanding the deep dive itself."""
        cached = self.state.detail_content.get(topic_id)
        if cached is not None:
            return cached
        topic = self._find(topic_id)
        if topic is None:
            return None

        task = self._details.get(topic_id)
        if task is None:
            task = self._spawn(self._fetch_detail(topic))
            self._details[topic_id] = task
        return await asyncio.shield(task)

    async def _fetch_detail(self, topic: Topic) -> Optional[str]:
        try:
            base = await self.expand_topic(topic.id) or topic.content
            content = await self.service.fetch_expansion(topic.id, topic.title, base)
        except Exception:
            logger.warning("Detail fetch failed for topic_id=%s", topic.id, exc_info=True)
            return None
        finally:
            self._details.pop(topic.id, None)

        self.state.detail_content[topic.id] = content
        return content

    # ── Prefetch ───────────────────────────────────────────────────────────

    def _prefetch(self) -> None:
        """Warm caches around the current position. Never blocks."""
        state = self.state
        topic = state.current_topic
        if topic is None:
            return

        self._prefetch_expansion(topic)
        for highlight in topic.highlights:
            self._prefetch_concept(topic, highlight)

        end = min(state.current_index + self.settings.preload_count + 1, len(state.topics))
        for upcoming in state.topics[state.current_index + 1:end]:
            self._prefetch_expansion(upcoming)

    def _prefetch_expansion(self, topic: Topic) -> None:
        if topic.id in self._prefetched or topic.id in self.state.expanded_content:
            return
        self._prefetched.add(topic.id)
        self._expansion_task(topic)

    def _prefetch_concept(self, topic: Topic, highlight: Highlight) -> None:
        key = normalize_concept(highlight.text)
        inflight_key = f"{topic.id}:{highlight.text}"
        if not key or key in self.state.concept_cache or inflight_key in self._concept_inflight:
            return
        self._concept_inflight.add(inflight_key)
        self._explanation_task(key, highlight.text, topic)

    # ── Concept exploration ────────────────────────────────────────────────

    def _explanation_task(self, key: str, concept: str, topic: Optional[Topic]) -> asyncio.Task:
        task = self._explanations.get(key)
        if task is None:
            task = self._spawn(self._fetch_explanation(key, concept, topic))
            self._explanations[key] = task
        return task

    async def _fetch_explanation(self, key: str, concept: str, topic: Optional[Topic]) -> Optional[str]:
        try:
            content = await self.service.fetch_explanation(
                concept,
                topic.id if topic else "",
                topic.content if topic else "",
            )
        except Exception:
            logger.warning("Explanation fetch failed for concept=%r", concept, exc_info=True)
            return None
        finally:
            self._explanations.pop(key, None)

        self.state.concept_cache[key] = content
        return content

    async def explore_concept(self, text: str) -> None:
        """Open the concept overlay for *text*, cache first.

        A cache hit is applied before this coroutine first suspends, so the
        overlay is populated without a network round-trip.
        """
        state = self.state
        key = normalize_concept(text)
        self._concept_generation += 1
        generation = self._concept_generation

        state.current_concept = text
        if key in state.concept_cache:
            state.concept_content = state.concept_cache[key]
            state.is_exploring_concept = False
            return

        state.concept_content = None
        state.is_exploring_concept = True

        content = await asyncio.shield(self._explanation_task(key, text, self.current_topic))
        if generation != self._concept_generation:
            return
        if content is None:
            logger.error("Error exploring concept %r", text)
            content = CONCEPT_FALLBACK.format(concept=text)
        state.concept_content = content
        state.is_exploring_concept = False

    async def handle_highlight_click(self, highlight: Highlight) -> None:
        await self.explore_concept(highlight.text)

    def clear_concept_exploration(self) -> None:
        self._clear_concept()

    def _clear_concept(self) -> None:
        self._concept_generation += 1
        self.state.current_concept = None
        self.state.concept_content = None
        self.state.is_exploring_concept = False

    # ── Questions ──────────────────────────────────────────────────────────

    def open_question(self, selected_text: Optional[str] = None) -> None:
        if not self.settings.enable_question_overlay:
            return
        self._question_generation += 1
        self.state.question = QuestionState(is_open=True, selected_text=selected_text)

    def close_question(self) -> None:
        self._question_generation += 1
        self.state.question = QuestionState()

    async def ask_question(self, question: str) -> Optional[str]:
        """Answer a question about the current topic in the question overlay.

        Returns the answer (or the fallback text), or ``None`` when the
        overlay is disabled or there is no current topic.
        """
        topic = self.current_topic
        if not self.settings.enable_question_overlay or topic is None:
            return None

        overlay = self.state.question
        overlay.is_open = True
        overlay.question = question
        overlay.answer = None
        overlay.is_loading = True
        generation = self._question_generation

        try:
            answer = await self.service.fetch_answer(
                question, topic.id, overlay.selected_text, topic.content,
            )
        except Exception:
            logger.exception("Error answering question %r", question)
            answer = ANSWER_FALLBACK

        if generation == self._question_generation:
            overlay.answer = answer
            overlay.is_loading = False
        return answer
