"""Content store collaborator: protocol, wire models and HTTP adapter."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol, runtime_checkable

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator

from core import settings
from .errors import ContentFetchError

PUBLISHED_STATUS = "published"


class ContentSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    body_excerpt: str = ""
    author_id: int
    status: str = PUBLISHED_STATUS
    published_at: datetime | None = None
    created_at: datetime
    view_count: int = 0
    category: str | None = None

    @field_validator("published_at", "created_at")
    @classmethod
    def _normalize_utc(cls, value: datetime | None) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @property
    def sort_timestamp(self) -> datetime:
        return self.published_at or self.created_at


class ContentPage(BaseModel):
    items: list[ContentSummary] = Field(default_factory=list)
    next_cursor: str | None = None


@runtime_checkable
class ContentStore(Protocol):
    async def list_by_author(
        self,
        author_id: int,
        *,
        status: str = PUBLISHED_STATUS,
        cursor: str | None = None,
        limit: int | None = None,
    ) -> ContentPage: ...


class HttpContentStore:
    """Lists author content from the content service over HTTP."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    @classmethod
    def from_settings(cls) -> HttpContentStore:
        client = httpx.AsyncClient(
            base_url=settings.content_service_url,
            timeout=settings.content_service_timeout_seconds,
        )
        return cls(client)

    async def list_by_author(
        self,
        author_id: int,
        *,
        status: str = PUBLISHED_STATUS,
        cursor: str | None = None,
        limit: int | None = None,
    ) -> ContentPage:
        params: dict[str, str | int] = {"status": status}
        if cursor:
            params["cursor"] = cursor
        if limit is not None:
            params["limit"] = limit

        try:
            response = await self._client.get(f"/authors/{author_id}/contents", params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ContentFetchError(
                author_id, f"content service returned {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ContentFetchError(author_id, exc.__class__.__name__) from exc

        try:
            return ContentPage.model_validate(response.json())
        except ValueError as exc:
            raise ContentFetchError(author_id, "malformed content listing") from exc

    async def aclose(self) -> None:
        await self._client.aclose()

    @property
    def is_closed(self) -> bool:
        return self._client.is_closed
