"""Response mapping helpers for snippet routes."""

from __future__ import annotations

from snippy.models.snippet import Snippet
from snippy.schemas.snippet import (
    SnippetFileResponse,
    SnippetListResponse,
    SnippetOwner,
    SnippetResponse,
    SnippetSummaryResponse,
)
from snippy.services.pagination import PaginationParams
from snippy.services.snippets import FileInput, SnippetPage


def to_file_inputs(files) -> list[FileInput]:
    return [FileInput(file_type=item.file_type.value, content=item.content) for item in files]


def _owner(snippet: Snippet) -> SnippetOwner | None:
    user = snippet.user
    if user is None:
        return None
    return SnippetOwner(
        user_name=user.user_name,
        display_name=user.display_name,
        picture_url=user.picture_url,
    )


def _summary_fields(snippet: Snippet, *, is_favorited: bool) -> dict:
    return {
        "short_id": snippet.short_id,
        "name": snippet.name,
        "description": snippet.description,
        "tags": snippet.tags,
        "is_private": snippet.is_private,
        "parent_short_id": snippet.parent_short_id,
        "view_count": snippet.view_count,
        "fork_count": snippet.fork_count,
        "favorite_count": snippet.favorite_count,
        "comment_count": snippet.comment_count,
        "is_favorited": is_favorited,
        "owner": _owner(snippet),
        "created_at": snippet.created_at,
        "updated_at": snippet.updated_at,
    }


def to_snippet_response(snippet: Snippet, *, is_favorited: bool = False) -> SnippetResponse:
    return SnippetResponse(
        **_summary_fields(snippet, is_favorited=is_favorited),
        external_resources=list(snippet.external_resources or []),
        files=[
            SnippetFileResponse(file_type=item.file_type, content=item.content)
            for item in snippet.files
        ],
    )


def to_list_response(page: SnippetPage, pagination: PaginationParams) -> SnippetListResponse:
    return SnippetListResponse(
        items=[
            SnippetSummaryResponse(
                **_summary_fields(item, is_favorited=item.id in page.favorited_ids)
            )
            for item in page.items
        ],
        total=page.total,
        page=pagination.page,
        limit=pagination.limit,
    )
