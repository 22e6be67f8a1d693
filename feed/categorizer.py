"""Topic category classification.

The rewrite step asks Claude for one of the fixed categories, but the answer
is free text. ``coerce_category`` accepts it when valid and otherwise infers
a category from the article's domain, then from title/content keywords:

- SCIENCE   🔬  Journals, preprint servers, science desks
- TECH      💻  Tech press, code hosting, AI labs
- FINANCE   📈  Markets and business press
- HEALTH    🩺  Medical journals and health outlets
- SPORTS    🏟  Sports networks
- NEWS      📰  Everything else with a URL
"""

from __future__ import annotations

import logging
import re
from typing import Optional
from urllib.parse import urlparse

from feed.models import TopicCategory

logger = logging.getLogger(__name__)


#: Human-readable emoji labels for each category.
CATEGORY_LABELS: dict[TopicCategory, str] = {
    TopicCategory.NEWS: "📰 News",
    TopicCategory.TECH: "💻 Tech",
    TopicCategory.SCIENCE: "🔬 Science",
    TopicCategory.FINANCE: "📈 Finance",
    TopicCategory.CULTURE: "🎭 Culture",
    TopicCategory.POLITICS: "🏛 Politics",
    TopicCategory.HEALTH: "🩺 Health",
    TopicCategory.SPORTS: "🏟 Sports",
    TopicCategory.GENERAL: "📌 General",
}


# ── Domain allow-lists ─────────────────────────────────────────────────────────

_DOMAIN_CATEGORIES: dict[str, TopicCategory] = {
    **dict.fromkeys([
        "arxiv.org", "nature.com", "science.org", "sciencedaily.com",
        "newscientist.com", "scientificamerican.com", "phys.org",
        "biorxiv.org", "quantamagazine.org",
    ], TopicCategory.SCIENCE),
    **dict.fromkeys([
        "techcrunch.com", "theverge.com", "wired.com", "arstechnica.com",
        "technologyreview.com", "github.com", "news.ycombinator.com",
        "engadget.com",
    ], TopicCategory.TECH),
    **dict.fromkeys([
        "bloomberg.com", "ft.com", "wsj.com", "cnbc.com", "reuters.com/markets",
        "marketwatch.com", "economist.com",
    ], TopicCategory.FINANCE),
    **dict.fromkeys([
        "statnews.com", "nejm.org", "thelancet.com", "who.int",
        "medicalnewstoday.com", "pubmed.ncbi.nlm.nih.gov",
    ], TopicCategory.HEALTH),
    **dict.fromkeys([
        "espn.com", "theathletic.com", "skysports.com", "bbc.com/sport",
    ], TopicCategory.SPORTS),
    **dict.fromkeys([
        "politico.com", "thehill.com",
    ], TopicCategory.POLITICS),
    **dict.fromkeys([
        "theatlantic.com", "newyorker.com", "pitchfork.com", "variety.com",
    ], TopicCategory.CULTURE),
}


def classify_url(url: str) -> Optional[TopicCategory]:
    """Classify a URL by its domain, or return ``None`` when unknown.

    Examples:
        >>> classify_url("https://www.nature.com/articles/x")
        <TopicCategory.SCIENCE: 'science'>
        >>> classify_url("https://example.com") is None
        True
    """
    try:
        parsed = urlparse(url)
    except ValueError:
        logger.debug("Failed to parse URL for classification: %r", url)
        return None

    domain = parsed.netloc.lower().removeprefix("www.")
    if not domain:
        return None

    first_segment = parsed.path.strip("/").split("/")[0]
    for key in (f"{domain}/{first_segment}", domain):
        if key in _DOMAIN_CATEGORIES:
            return _DOMAIN_CATEGORIES[key]
    return None


# ── Text-based heuristics (fallback) ──────────────────────────────────────────

_TEXT_PATTERNS: list[tuple[TopicCategory, re.Pattern[str]]] = [
    (TopicCategory.HEALTH, re.compile(
        r"\b(?:health|disease|vaccine|patients?|clinical|medical|microbiome)\b",
        re.IGNORECASE,
    )),
    (TopicCategory.SCIENCE, re.compile(
        r"\b(?:scientists?|researchers?|study|quantum|physics|species|telescope)\b",
        re.IGNORECASE,
    )),
    (TopicCategory.TECH, re.compile(
        r"\b(?:AI|software|startup|chip|app|robot|algorithm|smartphone)\b",
        re.IGNORECASE,
    )),
    (TopicCategory.FINANCE, re.compile(
        r"\b(?:market|stocks?|inflation|bank|rates?|investors?|economy)\b",
        re.IGNORECASE,
    )),
    (TopicCategory.POLITICS, re.compile(
        r"\b(?:election|senate|congress|parliament|minister|president|policy)\b",
        re.IGNORECASE,
    )),
    (TopicCategory.SPORTS, re.compile(
        r"\b(?:match|league|championship|tournament|coach|season)\b",
        re.IGNORECASE,
    )),
    (TopicCategory.CULTURE, re.compile(
        r"\b(?:film|music|album|museum|art|novel|culture)\b",
        re.IGNORECASE,
    )),
]


def classify_by_text(title: str, content: str) -> TopicCategory:
    """Infer a category from title and content keywords.

    Returns ``TopicCategory.GENERAL`` when no pattern matches.
    """
    combined = f"{title} {content}"
    for category, pattern in _TEXT_PATTERNS:
        if pattern.search(combined):
            return category
    return TopicCategory.GENERAL


# ── Public interface ───────────────────────────────────────────────────────────


def coerce_category(
    raw: object,
    url: str = "",
    title: str = "",
    content: str = "",
) -> TopicCategory:
    """Turn a model-supplied category into a valid ``TopicCategory``.

    Tries the raw value first, then the URL domain, then text heuristics.
    """
    if isinstance(raw, str):
        try:
            return TopicCategory(raw.strip().lower())
        except ValueError:
            logger.debug("Unknown category %r, inferring from article", raw)

    by_url = classify_url(url) if url else None
    if by_url is not None:
        return by_url
    return classify_by_text(title, content)
