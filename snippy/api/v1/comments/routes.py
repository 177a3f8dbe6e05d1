"""Comment API endpoints.

Listing and creation hang off a snippet (``snippet_router``); edits and
deletes address a comment directly (``router``).
"""

from __future__ import annotations

from fastapi import APIRouter, status

from snippy.dependencies import CurrentUser, DbSession, OptionalUser, Pagination
from snippy.models.comment import Comment
from snippy.schemas.comment import (
    CommentCreate,
    CommentListResponse,
    CommentResponse,
    CommentUpdate,
)
from snippy.services import comments as comment_service

router = APIRouter()
snippet_router = APIRouter()


@snippet_router.get(
    "/{short_id}/comments",
    response_model=CommentListResponse,
    summary="List comments",
    description="Return a snippet's comments, oldest first.",
)
async def list_comments(
    short_id: str,
    session: DbSession,
    pagination: Pagination,
    viewer_id: OptionalUser,
) -> CommentListResponse:
    page = await comment_service.list_comments(session, short_id, pagination, viewer_id=viewer_id)
    return CommentListResponse(
        items=[_to_comment_response(comment, short_id=short_id) for comment in page.items],
        total=page.total,
        page=pagination.page,
        limit=pagination.limit,
    )


@snippet_router.post(
    "/{short_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add comment",
)
async def add_comment(
    short_id: str,
    payload: CommentCreate,
    session: DbSession,
    current_user: CurrentUser,
) -> CommentResponse:
    comment = await comment_service.add_comment(
        session,
        short_id,
        actor_id=current_user,
        content=payload.content,
    )
    return _to_comment_response(comment, short_id=short_id)


@router.patch(
    "/{comment_id}",
    response_model=CommentResponse,
    summary="Edit comment",
)
async def update_comment(
    comment_id: str,
    payload: CommentUpdate,
    session: DbSession,
    current_user: CurrentUser,
) -> CommentResponse:
    comment = await comment_service.update_comment(
        session,
        comment_id,
        actor_id=current_user,
        content=payload.content,
    )
    return _to_comment_response(comment, short_id=comment.snippet.short_id)


@router.delete(
    "/{comment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete comment",
)
async def delete_comment(
    comment_id: str,
    session: DbSession,
    current_user: CurrentUser,
) -> None:
    await comment_service.delete_comment(session, comment_id, actor_id=current_user)


def _to_comment_response(comment: Comment, *, short_id: str) -> CommentResponse:
    user = comment.user
    return CommentResponse(
        id=str(comment.id),
        short_id=short_id,
        content=comment.content,
        user_name=user.user_name if user is not None else None,
        display_name=user.display_name if user is not None else None,
        created_at=comment.created_at,
        updated_at=comment.updated_at,
    )
