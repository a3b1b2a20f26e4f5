"""FastAPI application factory."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from api.v1 import api_router
from core import settings
from services import ContentStore, HttpContentStore, SelfFollowRejected, StorageUnavailable

logger = logging.getLogger(__name__)

STORAGE_RETRY_AFTER_SECONDS = 1


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


async def _self_follow_handler(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(
        {"detail": "Cannot follow yourself"},
        status_code=status.HTTP_400_BAD_REQUEST,
    )


async def _storage_unavailable_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Storage unavailable",
        extra={"path": request.url.path},
        exc_info=exc,
    )
    return JSONResponse(
        {"detail": "Service temporarily unavailable, try again"},
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        headers={"Retry-After": str(STORAGE_RETRY_AFTER_SECONDS)},
    )


def create_app(content_store: ContentStore | None = None) -> FastAPI:
    """Build the API application.

    Without ``content_store`` the HTTP content service client is opened on
    startup and closed on shutdown; an injected store is left for the caller
    to manage.
    """
    configure_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if content_store is not None:
            yield
            return
        owned_store = HttpContentStore.from_settings()
        app.state.content_store = owned_store
        try:
            yield
        finally:
            await owned_store.aclose()

    application = FastAPI(title="Follow Graph Service", lifespan=lifespan)
    if content_store is not None:
        application.state.content_store = content_store
    application.add_exception_handler(SelfFollowRejected, _self_follow_handler)
    application.add_exception_handler(StorageUnavailable, _storage_unavailable_handler)
    application.include_router(api_router)
    return application


app = create_app()
