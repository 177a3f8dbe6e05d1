"""Favorite API endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from snippy.api.v1.snippets.utils import to_list_response
from snippy.dependencies import CurrentUser, DbSession, Pagination
from snippy.schemas.favorite import FavoriteStateResponse
from snippy.schemas.snippet import SnippetListResponse
from snippy.services import favorites as favorite_service
from snippy.services.favorites import FavoriteState

router = APIRouter()


@router.get(
    "",
    response_model=SnippetListResponse,
    summary="List favorites",
    description="Return the snippets the caller has favorited.",
)
async def list_favorites(
    session: DbSession,
    pagination: Pagination,
    current_user: CurrentUser,
) -> SnippetListResponse:
    page = await favorite_service.list_favorite_snippets(
        session,
        pagination,
        actor_id=current_user,
    )
    return to_list_response(page, pagination)


@router.post(
    "/{short_id}/toggle",
    response_model=FavoriteStateResponse,
    summary="Toggle favorite",
    description="Favorite the snippet, or remove the favorite when one exists.",
)
async def toggle_favorite(
    short_id: str,
    session: DbSession,
    current_user: CurrentUser,
) -> FavoriteStateResponse:
    state = await favorite_service.toggle_favorite(session, short_id, actor_id=current_user)
    return _to_response(state)


@router.put(
    "/{short_id}",
    response_model=FavoriteStateResponse,
    summary="Add favorite",
)
async def add_favorite(
    short_id: str,
    session: DbSession,
    current_user: CurrentUser,
) -> FavoriteStateResponse:
    state = await favorite_service.add_favorite(session, short_id, actor_id=current_user)
    return _to_response(state)


@router.delete(
    "/{short_id}",
    response_model=FavoriteStateResponse,
    summary="Remove favorite",
)
async def remove_favorite(
    short_id: str,
    session: DbSession,
    current_user: CurrentUser,
) -> FavoriteStateResponse:
    state = await favorite_service.remove_favorite(session, short_id, actor_id=current_user)
    return _to_response(state)


def _to_response(state: FavoriteState) -> FavoriteStateResponse:
    return FavoriteStateResponse(
        short_id=state.short_id,
        is_favorited=state.is_favorited,
        favorite_count=state.favorite_count,
    )
