"""User API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from snippy.api.v1.snippets.utils import to_list_response
from snippy.dependencies import Context, CurrentUser, DbSession, OptionalUser, Pagination
from snippy.models.user import User
from snippy.schemas.snippet import SnippetListResponse
from snippy.schemas.user import (
    UserPublicResponse,
    UserResponse,
    UserSync,
    UserSyncResponse,
    UsernameAvailabilityResponse,
    UserUpdate,
)
from snippy.services import snippets as snippet_service
from snippy.services import users as user_service

router = APIRouter()


@router.post(
    "/me",
    response_model=UserSyncResponse,
    summary="Sync current user",
    description="Create the caller's account on first login, or refresh its picture.",
)
async def sync_current_user(
    payload: UserSync,
    session: DbSession,
    context: Context,
    current_user: CurrentUser,
) -> UserSyncResponse:
    user, created = await user_service.ensure_user(
        session,
        context,
        auth0_id=current_user,
        name=payload.name,
        picture_url=payload.picture_url,
    )
    return UserSyncResponse(user=_to_user_response(user), created=created)


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get current user",
)
async def get_current_user(session: DbSession, current_user: CurrentUser) -> UserResponse:
    user = await user_service.get_user(session, current_user)
    return _to_user_response(user)


@router.patch(
    "/me",
    response_model=UserResponse,
    summary="Update current user",
    description="Change username, display name or bio.",
)
async def update_current_user(
    payload: UserUpdate,
    session: DbSession,
    context: Context,
    current_user: CurrentUser,
) -> UserResponse:
    user = await user_service.update_profile(
        session,
        context,
        auth0_id=current_user,
        user_name=payload.user_name,
        display_name=payload.display_name,
        bio=payload.bio,
    )
    return _to_user_response(user)


@router.delete(
    "/me",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete current user",
    description="Delete the caller's account and everything it owns.",
)
async def delete_current_user(session: DbSession, current_user: CurrentUser) -> None:
    await user_service.delete_user(session, current_user)


@router.get(
    "/check-username/{user_name}",
    response_model=UsernameAvailabilityResponse,
    summary="Check username availability",
    description="Report whether a username can be claimed. Reserved or malformed names are rejected.",
)
async def check_username(
    user_name: str,
    session: DbSession,
    context: Context,
) -> UsernameAvailabilityResponse:
    candidate, available = await user_service.check_username_availability(
        session,
        context,
        user_name,
    )
    return UsernameAvailabilityResponse(user_name=candidate, available=available)


@router.get(
    "/{user_name}",
    response_model=UserPublicResponse,
    summary="Get public profile",
)
async def get_public_profile(user_name: str, session: DbSession) -> UserPublicResponse:
    user = await user_service.get_by_username(session, user_name)
    return UserPublicResponse(
        user_name=user.user_name,
        display_name=user.display_name,
        bio=user.bio,
        picture_url=user.picture_url,
        created_at=user.created_at,
    )


@router.get(
    "/{user_name}/snippets",
    response_model=SnippetListResponse,
    summary="List a user's public snippets",
)
async def list_user_snippets(
    user_name: str,
    session: DbSession,
    pagination: Pagination,
    viewer_id: OptionalUser,
) -> SnippetListResponse:
    page = await snippet_service.list_user_public_snippets(
        session,
        pagination,
        user_name=user_name.lower(),
        viewer_id=viewer_id,
    )
    return to_list_response(page, pagination)


def _to_user_response(user: User) -> UserResponse:
    return UserResponse(
        auth0_id=user.auth0_id,
        user_name=user.user_name,
        display_name=user.display_name,
        bio=user.bio,
        picture_url=user.picture_url,
        is_admin=user.is_admin,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )
