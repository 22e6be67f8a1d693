"""Application settings — all configuration loaded from environment variables.

Usage:
    from config.settings import Settings
    settings = Settings()
    settings.validate()   # raises ValueError on an unusable combination
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Centralised application configuration.

    All values are read from environment variables at instantiation time
    so that tests can override them by patching ``os.environ``.
    """

    # ── API Keys ────────────────────────────────────────────────────────────
    anthropic_api_key: str = field(
        default_factory=lambda: os.environ.get("ANTHROPIC_API_KEY", "")
    )

    # ── Flask ───────────────────────────────────────────────────────────────
    debug: bool = field(
        default_factory=lambda: os.environ.get("FLASK_DEBUG", "0") == "1"
    )
    port: int = field(
        default_factory=lambda: int(os.environ.get("PORT", "5001"))
    )

    # ── Feed client ─────────────────────────────────────────────────────────
    #: Base URL of the content API consumed by ``HttpContentService``.
    api_url: str = field(
        default_factory=lambda: os.environ.get("VIBESCROLL_API_URL", "http://localhost:5001")
    )
    request_timeout: float = field(
        default_factory=lambda: float(os.environ.get("REQUEST_TIMEOUT", "60"))
    )
    #: Topics per fetch, initial and paginated.
    batch_size: int = field(
        default_factory=lambda: int(os.environ.get("BATCH_SIZE", "3"))
    )
    #: How many upcoming topics get their deep dive prefetched.
    preload_count: int = field(
        default_factory=lambda: int(os.environ.get("PRELOAD_COUNT", "2"))
    )
    #: Load more once the reader is this close to the end of the list.
    load_more_threshold: int = field(
        default_factory=lambda: int(os.environ.get("LOAD_MORE_THRESHOLD", "2"))
    )
    max_empty_batches: int = field(
        default_factory=lambda: int(os.environ.get("MAX_EMPTY_BATCHES", "3"))
    )
    enable_pagination: bool = field(
        default_factory=lambda: _env_bool("ENABLE_PAGINATION", "1")
    )
    enable_question_overlay: bool = field(
        default_factory=lambda: _env_bool("ENABLE_QUESTION_OVERLAY", "1")
    )

    # ── Persistence ─────────────────────────────────────────────────────────
    state_db_path: str = field(
        default_factory=lambda: os.environ.get("STATE_DB_PATH", "")
    )
    #: Saved feed position older than this is discarded on startup.
    checkpoint_ttl_seconds: int = field(
        default_factory=lambda: int(os.environ.get("CHECKPOINT_TTL_SECONDS", "3600"))
    )

    # ── Search ──────────────────────────────────────────────────────────────
    max_search_results: int = field(
        default_factory=lambda: int(os.environ.get("MAX_SEARCH_RESULTS", "10"))
    )
    max_web_searches: int = field(
        default_factory=lambda: int(os.environ.get("MAX_WEB_SEARCHES", "3"))
    )

    # ── AI Models ───────────────────────────────────────────────────────────
    #: Model used for the trending web-search pass.
    research_model: str = "claude-haiku-4-5"
    #: Model used to rewrite articles into topics and to expand them.
    topic_model: str = "claude-sonnet-4-5"
    #: Fast model for concept explanations and Q&A.
    answer_model: str = "claude-haiku-4-5"

    @property
    def live(self) -> bool:
        """True when an Anthropic key is configured."""
        return bool(self.anthropic_api_key)

    def validate(self) -> None:
        """Raise ``ValueError`` if any setting is out of range."""
        if self.batch_size < 1:
            raise ValueError("BATCH_SIZE must be at least 1.")
        if self.preload_count < 0:
            raise ValueError("PRELOAD_COUNT must not be negative.")
        if self.load_more_threshold < 1:
            raise ValueError("LOAD_MORE_THRESHOLD must be at least 1.")
        if self.checkpoint_ttl_seconds <= 0:
            raise ValueError("CHECKPOINT_TTL_SECONDS must be positive.")
