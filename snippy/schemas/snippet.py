"""Snippet API schemas."""

from __future__ import annotations

from datetime import datetime
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator

from snippy.models.snippet import FileType


def _normalize_url(value: str) -> str:
    raw = value.strip()
    if not raw:
        raise ValueError("URL is required")
    parsed = urlparse(raw)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError("URL must be a valid http/https URL")
    return raw


def _normalize_tags(value: list[str] | None) -> list[str] | None:
    if value is None:
        return None
    seen: list[str] = []
    for tag in value:
        cleaned = str(tag).strip().lower()
        if cleaned and cleaned not in seen:
            seen.append(cleaned)
    return seen


class SnippetFilePayload(BaseModel):
    file_type: FileType
    content: str = Field(default="", max_length=500_000)


class SnippetCreate(BaseModel):
    """Schema for creating a snippet."""

    name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=1000)
    tags: list[str] | None = Field(default=None, max_length=20)
    is_private: bool = False
    external_resources: list[str] = Field(default_factory=list, max_length=20)
    files: list[SnippetFilePayload] = Field(default_factory=list, max_length=3)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, value: list[str] | None) -> list[str] | None:
        return _normalize_tags(value)

    @field_validator("external_resources")
    @classmethod
    def validate_external_resources(cls, value: list[str]) -> list[str]:
        return [_normalize_url(url) for url in value]

    @field_validator("files")
    @classmethod
    def validate_unique_file_types(
        cls, value: list[SnippetFilePayload]
    ) -> list[SnippetFilePayload]:
        types = [item.file_type for item in value]
        if len(types) != len(set(types)):
            raise ValueError("Each file type may appear only once")
        return value


class SnippetUpdate(BaseModel):
    """Schema for patching a snippet. System fields are not accepted."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=1000)
    tags: list[str] | None = Field(default=None, max_length=20)
    is_private: bool | None = None
    external_resources: list[str] | None = Field(default=None, max_length=20)
    files: list[SnippetFilePayload] | None = Field(default=None, max_length=3)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, value: list[str] | None) -> list[str] | None:
        return _normalize_tags(value)

    @field_validator("external_resources")
    @classmethod
    def validate_external_resources(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        return [_normalize_url(url) for url in value]


class SnippetFileResponse(BaseModel):
    file_type: str
    content: str


class SnippetOwner(BaseModel):
    user_name: str
    display_name: str | None
    picture_url: str | None


class SnippetSummaryResponse(BaseModel):
    """Snippet as shown in listings (no file contents)."""

    short_id: str
    name: str
    description: str | None
    tags: list[str] | None
    is_private: bool
    parent_short_id: str | None
    view_count: int
    fork_count: int
    favorite_count: int
    comment_count: int
    is_favorited: bool = False
    owner: SnippetOwner | None
    created_at: datetime
    updated_at: datetime


class SnippetResponse(SnippetSummaryResponse):
    """Full snippet including files."""

    external_resources: list[str]
    files: list[SnippetFileResponse]


class SnippetListResponse(BaseModel):
    items: list[SnippetSummaryResponse]
    total: int
    page: int
    limit: int
