"""Comment API schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class CommentCreate(BaseModel):
    content: str = Field(min_length=1, max_length=5000)

    @field_validator("content")
    @classmethod
    def validate_content(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("Comment cannot be empty")
        return stripped


class CommentUpdate(CommentCreate):
    pass


class CommentResponse(BaseModel):
    id: str
    short_id: str
    content: str
    user_name: str | None
    display_name: str | None
    created_at: datetime
    updated_at: datetime


class CommentListResponse(BaseModel):
    items: list[CommentResponse]
    total: int
    page: int
    limit: int
