"""Snippet API endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from snippy.api.v1.snippets.utils import to_file_inputs, to_list_response, to_snippet_response
from snippy.dependencies import Context, CurrentUser, DbSession, OptionalUser, Pagination, rate_limit_search
from snippy.repositories import favorite_repository
from snippy.schemas.snippet import SnippetCreate, SnippetListResponse, SnippetResponse, SnippetUpdate
from snippy.services import snippets as snippet_service

router = APIRouter()


@router.get(
    "",
    response_model=SnippetListResponse,
    summary="List public snippets",
    description="Return public snippets, newest first.",
)
async def list_public_snippets(
    session: DbSession,
    pagination: Pagination,
    viewer_id: OptionalUser,
) -> SnippetListResponse:
    page = await snippet_service.list_public_snippets(session, pagination, viewer_id=viewer_id)
    return to_list_response(page, pagination)


@router.get(
    "/search",
    response_model=SnippetListResponse,
    summary="Search public snippets",
    description="Case-insensitive match on snippet name and description.",
    dependencies=[Depends(rate_limit_search)],
)
async def search_snippets(
    session: DbSession,
    pagination: Pagination,
    viewer_id: OptionalUser,
    q: Annotated[str, Query(min_length=1, max_length=100)],
) -> SnippetListResponse:
    page = await snippet_service.list_public_snippets(
        session,
        pagination,
        viewer_id=viewer_id,
        search=q.strip(),
    )
    return to_list_response(page, pagination)


@router.get(
    "/mine",
    response_model=SnippetListResponse,
    summary="List my snippets",
    description="Return the caller's snippets, private ones included.",
)
async def list_my_snippets(
    session: DbSession,
    pagination: Pagination,
    current_user: CurrentUser,
) -> SnippetListResponse:
    page = await snippet_service.list_my_snippets(session, pagination, actor_id=current_user)
    return to_list_response(page, pagination)


@router.post(
    "",
    response_model=SnippetResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create snippet",
    description="Create a snippet with its files; a unique short ID is assigned.",
)
async def create_snippet(
    payload: SnippetCreate,
    session: DbSession,
    context: Context,
    current_user: CurrentUser,
) -> SnippetResponse:
    snippet = await snippet_service.create_snippet(
        session,
        context,
        auth0_id=current_user,
        name=payload.name,
        description=payload.description,
        tags=payload.tags,
        is_private=payload.is_private,
        external_resources=payload.external_resources,
        files=to_file_inputs(payload.files),
    )
    return to_snippet_response(snippet)


@router.get(
    "/{short_id}",
    response_model=SnippetResponse,
    summary="Get snippet",
    description="Return one snippet with its files. Views by non-owners are counted.",
)
async def get_snippet(
    short_id: str,
    session: DbSession,
    viewer_id: OptionalUser,
) -> SnippetResponse:
    snippet = await snippet_service.view_snippet(session, short_id, viewer_id)
    is_favorited = False
    if viewer_id is not None:
        favorited = await favorite_repository.favorited_snippet_ids(
            session,
            auth0_id=viewer_id,
            snippet_ids=[snippet.id],
        )
        is_favorited = snippet.id in favorited
    return to_snippet_response(snippet, is_favorited=is_favorited)


@router.patch(
    "/{short_id}",
    response_model=SnippetResponse,
    summary="Update snippet",
    description="Patch an owned snippet's metadata and files.",
)
async def update_snippet(
    short_id: str,
    payload: SnippetUpdate,
    session: DbSession,
    current_user: CurrentUser,
) -> SnippetResponse:
    update_data = payload.model_dump(exclude_unset=True, exclude={"files"})
    snippet = await snippet_service.update_snippet(
        session,
        short_id,
        actor_id=current_user,
        patch=update_data,
        files=to_file_inputs(payload.files) if payload.files is not None else None,
    )
    return to_snippet_response(snippet)


@router.delete(
    "/{short_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete snippet",
    description="Delete an owned snippet with its files, favorites and comments.",
)
async def delete_snippet(
    short_id: str,
    session: DbSession,
    current_user: CurrentUser,
) -> None:
    await snippet_service.delete_snippet(session, short_id, actor_id=current_user)


@router.post(
    "/{short_id}/fork",
    response_model=SnippetResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Fork snippet",
    description="Copy a snippet and its files into the caller's account.",
)
async def fork_snippet(
    short_id: str,
    session: DbSession,
    context: Context,
    current_user: CurrentUser,
) -> SnippetResponse:
    fork = await snippet_service.fork_snippet(session, context, short_id, actor_id=current_user)
    return to_snippet_response(fork)
