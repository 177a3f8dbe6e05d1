"""API v1 router aggregator."""

from fastapi import APIRouter, Depends

from snippy.api.v1.comments import routes as comments
from snippy.api.v1.favorites import routes as favorites
from snippy.api.v1.snippets import routes as snippets
from snippy.api.v1.users import routes as users
from snippy.dependencies import rate_limit_request

api_router = APIRouter(dependencies=[Depends(rate_limit_request)])

api_router.include_router(users.router, prefix="/users", tags=["Users"])
api_router.include_router(snippets.router, prefix="/snippets", tags=["Snippets"])
api_router.include_router(comments.snippet_router, prefix="/snippets", tags=["Comments"])
api_router.include_router(comments.router, prefix="/comments", tags=["Comments"])
api_router.include_router(favorites.router, prefix="/favorites", tags=["Favorites"])
