"""
Content generator for Vibescroll.

Produces everything the feed shows, using Claude when an API key is set and
bundled demo content otherwise.

Flow
────
1. topics(count, exclude_ids)
     → TrendingSearch finds today's stories (Claude + web_search)
     → each story is rewritten into a Topic (title, summary, content,
       category, highlight phrases) through the parse-and-validate step
     → no usable live topics → shuffled demo topics, mode "demo"

2. expand(topic_id, title, content)
     → background briefing via web_search, then a 3-4 paragraph deep dive

3. explain(concept, topic_id, context)
     → concept explanation, web-grounded when the concept looks
       time-sensitive or names something specific

4. answer(question, topic_id, selected_text, context)
     → direct answer to a reader's question

Every call degrades to demo content instead of raising.
"""

from __future__ import annotations

import logging
import random
import re
from typing import TYPE_CHECKING, Optional

from feed import demo
from feed.models import Mode, Topic, TopicBatch
from feed.parsing import ParseError, build_topic, parse_topic_response
from feed.search import TrendingSearch

if TYPE_CHECKING:
    from config.settings import Settings
    from feed.search import SearchResult

logger = logging.getLogger(__name__)

_TOPIC_PROMPT = """Analyze this article and provide a JSON response:

Title: {title}
Content: {content}

Return ONLY valid JSON:
{{
  "title": "compelling title, max 80 chars",
  "summary": "2-3 sentence summary, max 200 chars",
  "content": "main content rewritten clearly, max 600 chars",
  "category": "one of: news, tech, science, finance, culture, politics, health, sports, general",
  "highlights": [
    {{"text": "exact interesting phrase from content that users would want to explore", "reason": "why interesting"}}
  ]
}}

Include 3-5 highlights - phrases copied verbatim from your content that invite deeper exploration."""

_EXPAND_PROMPT = """Expand on this topic with more depth, context, and analysis.

Topic: {title}
Original content: {content}
{research}
Provide a comprehensive expansion (3-4 paragraphs) that:
- Adds depth and nuance to the original
- Includes relevant background and context
- Explains implications and significance
- Remains engaging and accessible

Write directly, no preamble. Use **bold** for key terms."""

_EXPLAIN_SYSTEM = (
    "You are an expert educator who explains concepts clearly and engagingly. "
    "Your explanations are informative but accessible, well-structured, include "
    "practical examples when helpful and run 300-500 words. Format with markdown: "
    "**bold** for key terms, bullet points for lists."
)

_ANSWER_PROMPT = """Answer this question based on the provided context.

Question: {question}
{selection}
{context}
{research}
Provide a clear, direct answer. If information is uncertain, acknowledge it."""

#: Signals that a concept benefits from fresh web results.
_SEARCH_INDICATORS: list[re.Pattern[str]] = [
    re.compile(r"\d{4}"),                      # years
    re.compile(r"\d+%"),                       # percentages
    re.compile(r"[A-Z][a-z]+\s[A-Z]"),         # proper nouns
    re.compile(r"latest|recent|current|new|today|this week", re.IGNORECASE),
    re.compile(r"company|organization|person|who|what happened", re.IGNORECASE),
]


def should_search(concept: str) -> bool:
    """Decide whether explaining *concept* warrants a web search.

    Very short concepts are assumed to be common words.

    Examples:
        >>> should_search("Jerome Powell")
        True
        >>> should_search("butyrate")
        False
    """
    if len(concept) < 5:
        return False
    return any(pattern.search(concept) for pattern in _SEARCH_INDICATORS)


def _first_text(response: object) -> str:
    for block in getattr(response, "content", []) or []:
        if getattr(block, "type", None) == "text":
            return block.text
    return ""


class ContentGenerator:
    """Generates topics and deep-dive text with Claude, or demo content.

    The Anthropic client is lazy-initialised so that the class can be
    instantiated in tests without requiring a live API key.
    """

    def __init__(self, settings: Settings, search: Optional[TrendingSearch] = None) -> None:
        self.settings = settings
        self.search = search or TrendingSearch(settings)
        self._client: object = None  # Lazy-initialised anthropic.Anthropic

    @property
    def client(self) -> object:
        """Lazy-initialise and return the Anthropic SDK client."""
        if self._client is None:
            import anthropic
            self._client = anthropic.Anthropic(
                api_key=self.settings.anthropic_api_key,
                max_retries=5,
            )
        return self._client

    def _complete(self, model: str, prompt: str, max_tokens: int, system: str = "") -> str:
        kwargs = {"system": system} if system else {}
        response = self.client.messages.create(
            model=model,
            max_tokens=max_tokens,
            messages=[{"role": "user", "content": prompt}],
            **kwargs,
        )
        return _first_text(response).strip()

    def _research(self, query: str) -> str:
        """Best-effort background briefing; empty on failure."""
        try:
            return self.search.context(query)
        except Exception:
            logger.exception("Context search failed for query=%r", query)
            return ""

    # ── Topics ─────────────────────────────────────────────────────────────

    def rewrite(self, result: SearchResult) -> Optional[Topic]:
        """Rewrite one search result into a ``Topic``, or ``None`` if unusable."""
        prompt = _TOPIC_PROMPT.format(
            title=result.title,
            content=(result.snippet or result.title)[:3000],
        )
        text = self._complete(self.settings.topic_model, prompt, max_tokens=1024)

        parsed = parse_topic_response(text)
        if isinstance(parsed, ParseError):
            logger.warning("Discarding article %r: %s", result.url, parsed.message)
            return None

        return build_topic(parsed.raw, result.url, result.source, result.published_date)

    def live_topics(self, count: int) -> list[Topic]:
        """Search and rewrite up to ``count + 2`` stories into topics."""
        try:
            results = self.search.trending(count)
        except Exception:
            logger.exception("Trending search failed")
            return []

        random.shuffle(results)
        topics: list[Topic] = []
        for result in results[:count + 2]:
            try:
                topic = self.rewrite(result)
            except Exception:
                logger.exception("Error processing article %r", result.url)
                continue
            if topic is not None:
                topics.append(topic)

        logger.info("Rewrote %d of %d stories into topics", len(topics), len(results))
        return topics

    def topics(self, count: int, exclude_ids: Optional[set[str]] = None) -> TopicBatch:
        """Return a batch of at most *count* topics not listed in *exclude_ids*."""
        exclude_ids = exclude_ids or set()
        topics: list[Topic] = []
        mode = Mode.DEMO

        if self.settings.live:
            topics = [t for t in self.live_topics(count) if t.id not in exclude_ids]
            if topics:
                mode = Mode.LIVE

        if not topics:
            logger.info("No live content available, using demo topics")
            topics = [t for t in demo.demo_topics() if t.id not in exclude_ids]

        random.shuffle(topics)
        return TopicBatch(topics=topics[:count], mode=mode, has_more=True)

    # ── Deep dives ─────────────────────────────────────────────────────────

    def expand(self, topic_id: str, title: str = "", content: str = "") -> str:
        """Return a 3-4 paragraph deep dive on a topic."""
        if not (self.settings.live and title and content):
            return demo.demo_expansion(topic_id)

        research = self._research(title)
        prompt = _EXPAND_PROMPT.format(
            title=title,
            content=content,
            research=f"Additional research:\n{research}\n" if research else "",
        )
        try:
            expanded = self._complete(self.settings.topic_model, prompt, max_tokens=1500)
        except Exception:
            logger.exception("Expansion failed for topic_id=%s", topic_id)
            expanded = ""

        return expanded or demo.demo_expansion(topic_id)

    def explain(self, concept: str, topic_id: str = "", context: str = "") -> str:
        """Explain a concept the reader selected, in the context it appeared in."""
        if not self.settings.live:
            return demo.demo_explanation(concept)

        prompt = f'Explain the concept: "{concept}"'
        if context:
            prompt += f"\n\nThis appeared in the context of: {context[:500]}"
        if should_search(concept):
            research = self._research(f"{concept} explanation overview")
            if research:
                prompt += f"\n\nHere is recent information to incorporate:\n{research}"
        prompt += "\n\nProvide a clear, comprehensive explanation. Start directly, no preamble."

        try:
            explanation = self._complete(
                self.settings.answer_model, prompt, max_tokens=1000, system=_EXPLAIN_SYSTEM,
            )
        except Exception:
            logger.exception("Explanation failed for concept=%r topic_id=%s", concept, topic_id)
            explanation = ""

        return explanation or demo.demo_explanation(concept)

    def answer(
        self,
        question: str,
        topic_id: str = "",
        selected_text: str = "",
        context: str = "",
    ) -> str:
        """Answer a reader's question about a topic or a selected passage."""
        if not self.settings.live:
            return demo.demo_answer(question, selected_text)

        research = self._research(f"{selected_text} {question}".strip())
        prompt = _ANSWER_PROMPT.format(
            question=question,
            selection=(
                f'The user is asking specifically about this text: "{selected_text}"\n'
                if selected_text else ""
            ),
            context=f"Topic context:\n{context}\n" if context else "",
            research=f"Additional research:\n{research}\n" if research else "",
        )
        try:
            answer = self._complete(self.settings.answer_model, prompt, max_tokens=800)
        except Exception:
            logger.exception("Answer failed for question=%r topic_id=%s", question, topic_id)
            answer = ""

        return answer or demo.demo_answer(question, selected_text)
