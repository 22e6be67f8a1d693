"""Trending-story search.

Responsibilities:
- Ask Claude, with the ``web_search`` tool, for today's most interesting
  stories across the feed's categories
- Parse the report Claude writes into one ``SearchResult`` per story
- Attach publication dates captured from the web_search result blocks
- Search supporting context for a single concept or question

The report is requested in a fixed layout (one ``## headline`` section per
story followed by a ``URL:`` line) because web_search result blocks carry
only titles and URLs; the readable text comes from Claude's report.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional
from urllib.parse import urlparse

from feed.dedup import deduplicate, deduplicate_titles

if TYPE_CHECKING:
    from config.settings import Settings

logger = logging.getLogger(__name__)


# ── Data classes ───────────────────────────────────────────────────────────────


@dataclass
class SearchResult:
    """A single story found by the trending search."""

    title: str
    url: str
    snippet: str
    source: str
    published_date: Optional[str] = None


# ── Report parsing ─────────────────────────────────────────────────────────────

_SECTION_RE = re.compile(r"^##\s+(.+?)\s*$", re.MULTILINE)
_URL_LINE_RE = re.compile(r"^URL:\s*(\S+)\s*$", re.MULTILINE | re.IGNORECASE)
_WWW_PREFIX = re.compile(r"^www\.")


def _hostname(url: str) -> str:
    """Return the bare hostname of *url*, stripping any ``www.`` prefix."""
    try:
        return _WWW_PREFIX.sub("", urlparse(url).netloc) or url
    except ValueError:
        return url


def parse_report(raw_text: str) -> list[SearchResult]:
    """Split a trending report into ``SearchResult`` objects.

    Sections without a ``URL:`` line are skipped.

    Examples:
        >>> parse_report("## Big news\\nURL: https://x.com/a\\nBody text.")[0].source
        'x.com'
    """
    headings = list(_SECTION_RE.finditer(raw_text))
    results: list[SearchResult] = []

    for idx, heading in enumerate(headings):
        end = headings[idx + 1].start() if idx + 1 < len(headings) else len(raw_text)
        body = raw_text[heading.end():end]

        url_match = _URL_LINE_RE.search(body)
        if not url_match:
            logger.debug("Report section %r has no URL, skipping", heading.group(1))
            continue

        url = url_match.group(1).strip("<>()")
        snippet = _URL_LINE_RE.sub("", body).strip()
        results.append(SearchResult(
            title=heading.group(1).strip(),
            url=url,
            snippet=snippet,
            source=_hostname(url),
        ))

    return results


# ── Search orchestrator ────────────────────────────────────────────────────────

#: Beta header name for the Claude web_search tool.
_WEB_SEARCH_BETA = "web-search-2025-03-05"
#: Tool definition passed to the Claude beta messages API.
_WEB_SEARCH_TOOL = {
    "type": "web_search_20250305",
    "name": "web_search",
}


def _page_ages(block: object) -> dict[str, str]:
    """Map result URL → ``page_age`` for a ``web_search_tool_result`` block."""
    if getattr(block, "type", None) != "web_search_tool_result":
        return {}
    ages: dict[str, str] = {}
    for hit in getattr(block, "content", None) or []:
        if getattr(hit, "type", None) != "web_search_result":
            continue
        url, age = getattr(hit, "url", None), getattr(hit, "page_age", None)
        if url and age:
            ages[url.rstrip("/")] = age
    return ages


def _text_delta(delta: object) -> Optional[str]:
    if getattr(delta, "type", None) == "text_delta":
        return delta.text
    return None


_TRENDING_SYSTEM = (
    "You are a news scout. Search the web for the most interesting stories "
    "published in the last 48 hours across news, technology, science, finance, "
    "culture, politics, health and sports. Prefer stories with real substance "
    "over celebrity gossip. For every story write exactly:\n"
    "## <original headline>\n"
    "URL: <article url>\n"
    "<one factual paragraph of 80-120 words>\n"
    "No introduction, no conclusion."
)

_CONTEXT_SYSTEM = (
    "You are a research assistant. Search the web once or twice and write a "
    "compact factual briefing (under 250 words) on the query. No preamble."
)


class TrendingSearch:
    """Finds trending stories and background context with Claude ``web_search``.

    No client is built until the first request, so offline sessions and
    tests never need a key.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._client: object = None

    @property
    def client(self) -> object:
        if self._client is None:
            import anthropic
            self._client = anthropic.Anthropic(
                api_key=self.settings.anthropic_api_key,
                max_retries=5,
            )
        return self._client

    def _stream(self, system: str, user_message: str, max_tokens: int) -> tuple[str, dict[str, str]]:
        """Run one web_search session.

        Returns:
            ``(text, dates)`` where *dates* maps each discovered URL to its
            ``page_age`` when the search result carried one.
        """
        chunks: list[str] = []
        dates: dict[str, str] = {}

        with self.client.beta.messages.stream(
            model=self.settings.research_model,
            max_tokens=max_tokens,
            betas=[_WEB_SEARCH_BETA],
            tools=[{**_WEB_SEARCH_TOOL, "max_uses": self.settings.max_web_searches}],
            system=system,
            messages=[{"role": "user", "content": user_message}],
        ) as stream:
            for event in stream:
                kind = getattr(event, "type", None)
                if kind == "content_block_start":
                    dates.update(_page_ages(getattr(event, "content_block", None)))
                elif kind == "content_block_delta":
                    chunk = _text_delta(getattr(event, "delta", None))
                    if chunk:
                        chunks.append(chunk)

        return "".join(chunks), dates

    def trending(self, count: int) -> list[SearchResult]:
        """Return up to ``max_search_results`` distinct trending stories.

        Args:
            count: Number of stories the caller intends to use; Claude is
                asked for a few more so failed rewrites can be absorbed.

        Raises:
            anthropic.APIError: On API failures.
        """
        wanted = max(count + 2, 5)
        raw_text, dates = self._stream(
            _TRENDING_SYSTEM,
            f"Find {wanted} trending stories.",
            max_tokens=400 * wanted,
        )

        results = deduplicate_titles(deduplicate(parse_report(raw_text)))
        for result in results:
            result.published_date = dates.get(result.url.rstrip("/"))

        logger.info("Trending search complete: %d stories found", len(results))
        return results[:self.settings.max_search_results]

    def context(self, query: str) -> str:
        """Return a short web-grounded briefing on *query*.

        Raises:
            ValueError: If the query is blank.
            anthropic.APIError: On API failures.
        """
        query = query.strip()
        if not query:
            raise ValueError("Search query must not be empty.")

        text, _ = self._stream(_CONTEXT_SYSTEM, f"Research: {query}", max_tokens=600)
        return text.strip()
