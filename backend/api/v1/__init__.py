"""Version 1 API routers."""

from fastapi import APIRouter

from . import feed, follows

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(follows.router)
api_router.include_router(feed.router)

__all__ = ["api_router"]
