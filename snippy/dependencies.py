"""FastAPI dependencies shared by the v1 routes."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, Query, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from snippy.config import settings
from snippy.core.context import ServiceContext, get_service_context
from snippy.core.database import get_session
from snippy.core.exceptions import AuthenticationError
from snippy.core.rate_limit import build_limiters, client_address, hit
from snippy.core.redis import RedisCounterClient, get_redis_counter_client
from snippy.core.security import verify_access_token
from snippy.services.pagination import PaginationParams

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

DbSession = Annotated[AsyncSession, Depends(get_session)]
Context = Annotated[ServiceContext, Depends(get_service_context)]


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> str:
    """Auth0 subject of a required bearer token."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError()
    return await verify_access_token(credentials.credentials)


async def get_optional_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> str | None:
    """Auth0 subject when a bearer token is present, otherwise None."""
    if credentials is None or not credentials.credentials:
        return None
    return await verify_access_token(credentials.credentials)


CurrentUser = Annotated[str, Depends(get_current_user_id)]
OptionalUser = Annotated[str | None, Depends(get_optional_user_id)]


def get_pagination(
    page: Annotated[int | None, Query(description="1-based page number")] = None,
    limit: Annotated[int | None, Query(description="Items per page")] = None,
) -> PaginationParams:
    return PaginationParams.from_query(page, limit)


Pagination = Annotated[PaginationParams, Depends(get_pagination)]


def _client_id(request: Request) -> str:
    return client_address(
        request.client.host if request.client is not None else None,
        request.headers.get("x-forwarded-for"),
        trusted_hops=settings.trusted_proxy_hops,
    )


_limiters = build_limiters(settings)


async def rate_limit_request(
    request: Request,
    counter: Annotated[RedisCounterClient, Depends(get_redis_counter_client)],
) -> None:
    """Global budget plus the read or write budget for the request method."""
    if not settings.rate_limit_enabled:
        return
    client_id = _client_id(request)
    await hit(counter, _limiters["global"], client_id)
    bucket = "reads" if request.method in {"GET", "HEAD", "OPTIONS"} else "writes"
    await hit(counter, _limiters[bucket], client_id)


async def rate_limit_search(
    request: Request,
    counter: Annotated[RedisCounterClient, Depends(get_redis_counter_client)],
) -> None:
    if not settings.rate_limit_enabled:
        return
    await hit(counter, _limiters["search"], _client_id(request))
