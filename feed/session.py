"""Wiring for a feed session from ``Settings``.

Usage:
    controller = build_controller(Settings())
    await controller.initialize()
"""

from __future__ import annotations

import logging
from typing import Optional

from config.settings import Settings
from feed.controller import FeedController
from feed.generator import ContentGenerator
from feed.persistence import KeyValueStore, MemoryStore, SQLiteStore
from feed.service import ContentService, HttpContentService, LocalContentService

logger = logging.getLogger(__name__)


def build_service(settings: Settings, in_process: bool = False) -> ContentService:
    """Talk to the content API, or run the generator in-process."""
    if in_process:
        return LocalContentService(ContentGenerator(settings))
    return HttpContentService(settings.api_url, timeout=settings.request_timeout)


def build_store(settings: Settings) -> KeyValueStore:
    """SQLite when ``STATE_DB_PATH`` is configured, memory otherwise."""
    if settings.state_db_path:
        return SQLiteStore(settings.state_db_path)
    return MemoryStore()


def build_controller(
    settings: Optional[Settings] = None,
    in_process: bool = False,
) -> FeedController:
    settings = settings or Settings()
    settings.validate()
    logger.info(
        "Building feed controller (in_process=%s, api_url=%s)", in_process, settings.api_url,
    )
    return FeedController(
        build_service(settings, in_process),
        build_store(settings),
        settings=settings,
    )
