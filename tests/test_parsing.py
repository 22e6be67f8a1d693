"""Tests for feed/parsing.py — extracting and validating Claude's topic JSON."""

from __future__ import annotations

import json

import pytest

from feed.models import TopicCategory
from feed.parsing import ParseError, ParseOk, RawHighlight, RawTopic, build_topic, extract_json, parse_topic_response

ARTICLE = {
    "title": "Error correction milestone",
    "summary": "A new code suppresses errors.",
    "content": "Scientists discovered a new quantum error correction method.",
    "category": "science",
    "highlights": [
        {"text": "quantum error correction", "reason": "core idea"},
        {"text": "surface codes", "reason": "paraphrased away"},
    ],
}


class TestExtractJson:
    def test_fenced_block(self):
        assert extract_json('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_bare_fence(self):
        assert extract_json('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_prose_around_object(self):
        assert extract_json('Here you go: {"a": 1} Hope that helps.') == '{"a": 1}'

    def test_plain_json(self):
        assert extract_json(' {"a": 1} ') == '{"a": 1}'


class TestParseTopicResponse:
    def test_valid_object(self):
        result = parse_topic_response(json.dumps(ARTICLE))
        assert isinstance(result, ParseOk)
        assert result.raw.title == "Error correction milestone"
        assert len(result.raw.highlights) == 2

    def test_fenced_object(self):
        result = parse_topic_response(f"```json\n{json.dumps(ARTICLE)}\n```")
        assert isinstance(result, ParseOk)

    @pytest.mark.parametrize("text", ["", "   "])
    def test_empty(self, text):
        assert parse_topic_response(text) == ParseError("empty response")

    def test_invalid_json(self):
        result = parse_topic_response("{title: oops}")
        assert isinstance(result, ParseError)
        assert result.message.startswith("invalid JSON")

    def test_non_object(self):
        result = parse_topic_response("[1, 2, 3]")
        assert result == ParseError("expected a JSON object, got list")

    def test_missing_field(self):
        result = parse_topic_response('{"title": "only a title"}')
        assert isinstance(result, ParseError)
        assert result.message.startswith("schema mismatch")


class TestBuildTopic:
    @pytest.fixture
    def raw(self):
        return RawTopic.model_validate(ARTICLE)

    def test_fields_copied(self, raw):
        topic = build_topic(raw, "https://example.com/a", "Example", "2026-03-01T09:30:00Z")
        assert topic.id.startswith("topic-")
        assert topic.title == raw.title
        assert topic.source == "Example"
        assert topic.source_url == "https://example.com/a"
        assert topic.timestamp.year == 2026
        assert topic.timestamp.tzinfo is not None
        assert topic.category == TopicCategory.SCIENCE

    def test_highlights_located_and_unfound_dropped(self, raw):
        topic = build_topic(raw, "https://example.com/a", "Example")
        assert [(h.id, h.start_index, h.end_index) for h in topic.highlights] == [
            ("https://example.com/a-h-0", 28, 52),
        ]

    def test_blank_highlight_skipped(self, raw):
        raw = raw.model_copy(update={"highlights": [RawHighlight(text="  ")]})
        assert build_topic(raw, "u", "s").highlights == []

    def test_ids_unique(self, raw):
        first = build_topic(raw, "u", "s")
        second = build_topic(raw, "u", "s")
        assert first.id != second.id

    def test_bad_date_uses_now(self, raw):
        topic = build_topic(raw, "u", "s", "last tuesday")
        assert topic.timestamp.tzinfo is not None

    def test_unknown_category_inferred(self, raw):
        raw = raw.model_copy(update={"category": "breakthroughs"})
        topic = build_topic(raw, "https://arxiv.org/abs/1", "arXiv")
        assert topic.category == TopicCategory.SCIENCE
