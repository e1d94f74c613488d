"""Pydantic models for change events."""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import UUID

from pydantic import BaseModel, Field

BOOK_ADDED = "book-added"


class AuthorPayload(BaseModel):
    id: UUID
    name: str
    born: int | None = None


class BookPayload(BaseModel):
    id: UUID
    title: str
    published: int
    genres: list[str] = []
    author: AuthorPayload


class ChangeEvent(BaseModel):
    topic: str
    payload: BookPayload
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
