"""Remote content service used by the feed controller.

``ContentService`` is the narrow async contract the controller depends on.
Two implementations ship:

- ``HttpContentService`` talks to the Vibescroll JSON API over httpx.
- ``LocalContentService`` calls a ``ContentGenerator`` in-process, running
  its blocking Anthropic calls in a worker thread.

Both raise ``ContentServiceError`` for anything the controller should treat
as a failed request.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Optional, Protocol

import httpx
from pydantic import ValidationError

from feed.models import TopicBatch

if TYPE_CHECKING:
    from feed.generator import ContentGenerator

logger = logging.getLogger(__name__)


class ContentServiceError(Exception):
    """A content request failed (transport, HTTP status or payload)."""


class ContentService(Protocol):
    async def fetch_topics(
        self, count: int, exclude_ids: Optional[set[str]] = None
    ) -> TopicBatch: ...

    async def fetch_expansion(self, topic_id: str, title: str, content: str) -> str: ...

    async def fetch_explanation(self, concept: str, topic_id: str, topic_context: str) -> str: ...

    async def fetch_answer(
        self,
        question: str,
        topic_id: str,
        selected_text: Optional[str],
        topic_context: str,
    ) -> str: ...

    async def aclose(self) -> None: ...


class HttpContentService:
    """``ContentService`` backed by the Flask API in ``web/app.py``.

    Args:
        base_url: Root URL of the API, e.g. ``http://localhost:5001``.
        timeout: Per-request timeout in seconds.
        client: Optional pre-built ``httpx.AsyncClient`` (tests pass one
            with a mock transport).
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict:
        try:
            response = await self._client.request(method, path, **kwargs)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            raise ContentServiceError(
                f"{method} {path} returned {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ContentServiceError(f"{method} {path} failed: {exc}") from exc
        except ValueError as exc:
            raise ContentServiceError(f"{method} {path} returned invalid JSON") from exc

        if not isinstance(data, dict):
            raise ContentServiceError(f"{method} {path} returned a non-object payload")
        return data

    async def _text_field(self, method: str, path: str, field: str, **kwargs: Any) -> str:
        data = await self._request(method, path, **kwargs)
        value = data.get(field)
        if not isinstance(value, str):
            raise ContentServiceError(f"{method} {path} response has no {field!r}")
        return value

    async def fetch_topics(
        self, count: int, exclude_ids: Optional[set[str]] = None
    ) -> TopicBatch:
        params: dict[str, Any] = {"count": count}
        if exclude_ids:
            params["exclude"] = ",".join(sorted(exclude_ids))

        data = await self._request("GET", "/api/topics", params=params)
        try:
            return TopicBatch.model_validate(data)
        except ValidationError as exc:
            raise ContentServiceError(f"malformed topic batch: {exc.error_count()} error(s)") from exc

    async def fetch_expansion(self, topic_id: str, title: str, content: str) -> str:
        return await self._text_field(
            "GET", "/api/expand", "content",
            params={"topicId": topic_id, "title": title, "content": content},
        )

    async def fetch_explanation(self, concept: str, topic_id: str, topic_context: str) -> str:
        return await self._text_field(
            "POST", "/api/explore", "content",
            json={"concept": concept, "topicId": topic_id, "topicContext": topic_context},
        )

    async def fetch_answer(
        self,
        question: str,
        topic_id: str,
        selected_text: Optional[str],
        topic_context: str,
    ) -> str:
        return await self._text_field(
            "POST", "/api/ask", "answer",
            json={
                "question": question,
                "topicId": topic_id,
                "selectedText": selected_text,
                "topicContext": topic_context,
            },
        )

    async def aclose(self) -> None:
        await self._client.aclose()


class LocalContentService:
    """``ContentService`` that runs a ``ContentGenerator`` in-process."""

    def __init__(self, generator: ContentGenerator) -> None:
        self.generator = generator

    async def _call(self, func, *args: Any) -> Any:
        try:
            return await asyncio.to_thread(func, *args)
        except Exception as exc:
            raise ContentServiceError(f"{func.__name__} failed: {exc}") from exc

    async def fetch_topics(
        self, count: int, exclude_ids: Optional[set[str]] = None
    ) -> TopicBatch:
        return await self._call(self.generator.topics, count, exclude_ids)

    async def fetch_expansion(self, topic_id: str, title: str, content: str) -> str:
        return await self._call(self.generator.expand, topic_id, title, content)

    async def fetch_explanation(self, concept: str, topic_id: str, topic_context: str) -> str:
        return await self._call(self.generator.explain, concept, topic_id, topic_context)

    async def fetch_answer(
        self,
        question: str,
        topic_id: str,
        selected_text: Optional[str],
        topic_context: str,
    ) -> str:
        return await self._call(
            self.generator.answer, question, topic_id, selected_text or "", topic_context,
        )

    async def aclose(self) -> None:
        return None
