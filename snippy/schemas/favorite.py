"""Favorite API schemas."""

from __future__ import annotations

from pydantic import BaseModel


class FavoriteStateResponse(BaseModel):
    """Favorite status after a toggle/add/remove."""

    short_id: str
    is_favorited: bool
    favorite_count: int
