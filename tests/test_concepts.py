"""Tests for concept exploration and the question overlay."""

from __future__ import annotations

import asyncio

import pytest

from conftest import FakeContentService, make_batch, make_topic
from feed.controller import ANSWER_FALLBACK, CONCEPT_FALLBACK, normalize_concept
from feed.models import Direction, Mode, TopicBatch


@pytest.fixture
async def feed(build):
    controller = build(FakeContentService(make_batch(1, 2)))
    await controller.initialize()
    await controller.wait_idle()
    return controller


# ── Concepts ───────────────────────────────────────────────────────────────────


class TestNormalize:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("Quantum", "quantum"),
            ("quantum ", "quantum"),
            ("  Gut-Brain Axis\n", "gut-brain axis"),
        ],
    )
    def test_normalize_concept(self, raw, expected):
        assert normalize_concept(raw) == expected


class TestExploreConcept:
    async def test_first_explore_fetches_and_caches(self, feed):
        await feed.explore_concept("Quantum")

        assert feed.state.current_concept == "Quantum"
        assert feed.state.concept_content == "explanation of quantum"
        assert feed.state.is_exploring_concept is False
        assert feed.state.concept_cache["quantum"] == "explanation of quantum"

    async def test_variant_spelling_hits_cache(self, feed):
        await feed.explore_concept("Quantum")
        feed.clear_concept_exploration()

        await feed.explore_concept("quantum ")

        assert len(feed.service.explanation_calls) == 1
        assert feed.state.concept_content == "explanation of quantum"

    async def test_cache_hit_applied_synchronously(self, feed):
        feed.state.concept_cache["entropy"] = "cached entropy"

        coro = feed.explore_concept("Entropy")
        # a cache hit completes on the first step
        with pytest.raises(StopIteration):
            coro.send(None)

        assert feed.state.concept_content == "cached entropy"
        assert feed.state.is_exploring_concept is False

    async def test_loading_flag_while_pending(self, feed):
        feed.service.gate = asyncio.Event()
        task = asyncio.create_task(feed.explore_concept("entropy"))
        await asyncio.sleep(0)

        assert feed.state.is_exploring_concept is True
        assert feed.state.concept_content is None

        feed.service.gate.set()
        await task
        assert feed.state.is_exploring_concept is False

    async def test_failure_shows_fallback(self, feed):
        feed.service.fail_explanations = True

        await feed.explore_concept("entropy")

        assert feed.state.concept_content == CONCEPT_FALLBACK.format(concept="entropy")
        assert "entropy" not in feed.state.concept_cache
        assert feed.state.is_exploring_concept is False

    async def test_stale_response_does_not_overwrite(self, feed):
        feed.service.gate = asyncio.Event()
        first = asyncio.create_task(feed.explore_concept("entropy"))
        await asyncio.sleep(0)
        feed.service.gate.set()
        feed.state.concept_cache["enthalpy"] = "cached enthalpy"
        await feed.explore_concept("enthalpy")
        await first

        assert feed.state.current_concept == "enthalpy"
        assert feed.state.concept_content == "cached enthalpy"
        # the late response still warms the cache
        assert feed.state.concept_cache["entropy"] == "explanation of entropy"

    async def test_response_after_dismiss_is_cached_only(self, feed):
        feed.service.gate = asyncio.Event()
        task = asyncio.create_task(feed.explore_concept("entropy"))
        await asyncio.sleep(0)

        feed.clear_concept_exploration()
        feed.service.gate.set()
        await task

        assert feed.state.current_concept is None
        assert feed.state.concept_content is None
        assert feed.state.concept_cache["entropy"] == "explanation of entropy"

    async def test_concurrent_explores_share_request(self, feed):
        feed.service.gate = asyncio.Event()
        first = asyncio.create_task(feed.explore_concept("Entropy"))
        second = asyncio.create_task(feed.explore_concept("entropy"))
        await asyncio.sleep(0)
        feed.service.gate.set()
        await asyncio.gather(first, second)

        assert len(feed.service.explanation_calls) == 1
        assert feed.state.current_concept == "entropy"

    async def test_explore_passes_topic_context(self, feed):
        feed.navigate(Direction.DOWN)
        await feed.explore_concept("entropy")

        assert ("entropy", "t2") in feed.service.explanation_calls

    async def test_highlight_click_explores_its_text(self, build):
        topic = make_topic(1, highlights=("surface codes",))
        service = FakeContentService(TopicBatch(topics=[topic], mode=Mode.LIVE))
        service.fail_explanations = True  # keep the prefetch from warming the cache
        controller = build(service)
        await controller.initialize()
        await controller.wait_idle()
        service.fail_explanations = False

        await controller.handle_highlight_click(topic.highlights[0])

        assert controller.state.current_concept == "surface codes"
        assert controller.state.concept_content == "explanation of surface codes"


# ── Questions ──────────────────────────────────────────────────────────────────


class TestQuestions:
    async def test_open_with_selection(self, feed):
        feed.open_question("error correction")

        assert feed.state.question.is_open is True
        assert feed.state.question.selected_text == "error correction"

    async def test_ask_answers_about_current_topic(self, feed):
        feed.open_question("error correction")

        answer = await feed.ask_question("Why does it matter?")

        assert answer == "answer to Why does it matter?"
        assert feed.state.question.answer == answer
        assert feed.state.question.is_loading is False
        assert feed.service.answer_calls == [("Why does it matter?", "t1", "error correction")]

    async def test_failure_shows_fallback(self, feed):
        feed.service.fail_answers = True
        feed.open_question()

        answer = await feed.ask_question("What is this?")

        assert answer == ANSWER_FALLBACK
        assert feed.state.question.answer == ANSWER_FALLBACK

    async def test_close_discards_late_answer(self, feed):
        feed.open_question()
        feed.service.gate = asyncio.Event()
        task = asyncio.create_task(feed.ask_question("What is this?"))
        await asyncio.sleep(0)

        feed.close_question()
        feed.service.gate.set()
        await task

        assert feed.state.question.is_open is False
        assert feed.state.question.answer is None

    async def test_disabled_overlay_is_inert(self, build):
        controller = build(FakeContentService(make_batch(1)), enable_question_overlay=False)
        await controller.initialize()

        controller.open_question("anything")
        answer = await controller.ask_question("anything?")

        assert answer is None
        assert controller.state.question.is_open is False
        assert controller.service.answer_calls == []
