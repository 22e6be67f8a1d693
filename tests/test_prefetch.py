"""Tests for speculative prefetching and the shared content caches."""

from __future__ import annotations

import asyncio

from conftest import FakeContentService, make_batch, make_topic
from feed.models import Direction, Mode, TopicBatch


def expansion_ids(service: FakeContentService) -> list[str]:
    return [topic_id for topic_id, _ in service.expansion_calls]


class TestDeepDivePrefetch:
    async def test_initial_load_prefetches_current_and_next_two(self, build):
        service = FakeContentService(make_batch(1, 2, 3, 4, 5))
        controller = build(service)

        await controller.initialize()
        await controller.wait_idle()

        assert expansion_ids(service) == ["t1", "t2", "t3"]
        assert set(controller.state.expanded_content) == {"t1", "t2", "t3"}

    async def test_preload_capped_at_list_end(self, build):
        service = FakeContentService(make_batch(1, 2))
        controller = build(service, preload_count=5)

        await controller.initialize()
        await controller.wait_idle()

        assert expansion_ids(service) == ["t1", "t2"]

    async def test_topic_never_prefetched_twice(self, build):
        service = FakeContentService(make_batch(1, 2, 3, 4, 5))
        controller = build(service)
        await controller.initialize()

        for direction in ("down", "down", "up", "up", "down", "down", "down"):
            controller.navigate(direction)
        await controller.wait_idle()

        ids = expansion_ids(service)
        assert sorted(ids) == ["t1", "t2", "t3", "t4", "t5"]
        assert len(ids) == len(set(ids))

    async def test_failed_prefetch_retried_on_demand(self, build):
        service = FakeContentService(make_batch(1, 2, 3))
        service.fail_expansions = {"t2"}
        controller = build(service)
        await controller.initialize()
        await controller.wait_idle()
        assert "t2" not in controller.state.expanded_content

        service.fail_expansions = set()
        controller.navigate(Direction.DOWN)
        controller.navigate(Direction.RIGHT)
        await controller.wait_idle()

        assert controller.current_expanded == "deep dive for t2"
        assert expansion_ids(service).count("t2") == 2

    async def test_expand_shares_inflight_prefetch(self, build):
        service = FakeContentService(make_batch(1, 2, 3))
        controller = build(service)
        await controller.initialize()
        service.gate = asyncio.Event()

        # the t1 prefetch is scheduled but unanswered
        controller.navigate(Direction.RIGHT)
        service.gate.set()
        await controller.wait_idle()

        assert expansion_ids(service).count("t1") == 1
        assert controller.current_expanded == "deep dive for t1"

    async def test_navigation_not_blocked_by_pending_prefetch(self, build):
        service = FakeContentService(make_batch(1, 2, 3))
        controller = build(service)
        await controller.initialize()
        service.gate = asyncio.Event()  # hold every later request

        controller.navigate(Direction.DOWN)
        controller.navigate(Direction.DOWN)

        assert controller.state.current_index == 2
        service.gate.set()
        await controller.wait_idle()


class TestConceptPrefetch:
    async def test_highlights_of_current_topic_prefetched(self, build):
        topic = make_topic(1, highlights=("Quantum error correction", "qubits"))
        service = FakeContentService(TopicBatch(topics=[topic], mode=Mode.LIVE))
        controller = build(service)

        await controller.initialize()
        await controller.wait_idle()

        assert controller.state.concept_cache == {
            "quantum error correction": "explanation of quantum error correction",
            "qubits": "explanation of qubits",
        }

    async def test_shared_phrase_uses_one_cache_entry(self, build):
        first = make_topic(1, highlights=("Qubits",))
        second = make_topic(2, highlights=("qubits",))
        service = FakeContentService(TopicBatch(topics=[first, second], mode=Mode.LIVE))
        controller = build(service)

        await controller.initialize()
        await controller.wait_idle()
        controller.navigate(Direction.DOWN)
        await controller.wait_idle()

        assert list(controller.state.concept_cache) == ["qubits"]
        assert len(service.explanation_calls) == 1

    async def test_cache_hit_needs_no_network(self, build):
        topic = make_topic(1, highlights=("gut-brain axis",))
        service = FakeContentService(TopicBatch(topics=[topic], mode=Mode.LIVE))
        controller = build(service)
        await controller.initialize()
        await controller.wait_idle()
        calls = len(service.explanation_calls)

        await controller.handle_highlight_click(topic.highlights[0])

        assert len(service.explanation_calls) == calls
        assert controller.state.concept_content == "explanation of gut-brain axis"

    async def test_prefetch_failures_are_swallowed(self, build):
        topic = make_topic(1, highlights=("butyrate",))
        service = FakeContentService(TopicBatch(topics=[topic], mode=Mode.LIVE))
        service.fail_explanations = True
        service.fail_expansions = {"t1"}
        controller = build(service)

        await controller.initialize()
        await controller.wait_idle()

        assert controller.state.error is None
        assert controller.state.concept_cache == {}
        assert controller.state.expanded_content == {}

    async def test_racing_completions_merge(self, build):
        topic = make_topic(1, highlights=("alpha", "beta"))
        service = FakeContentService(TopicBatch(topics=[topic], mode=Mode.LIVE))
        service.gate = asyncio.Event()
        controller = build(service)

        init = asyncio.create_task(controller.initialize())
        await asyncio.sleep(0)
        service.gate.set()
        await init
        await controller.explore_concept("gamma")
        await controller.wait_idle()

        assert set(controller.state.concept_cache) == {"alpha", "beta", "gamma"}
