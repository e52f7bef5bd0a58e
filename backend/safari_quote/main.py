from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from safari_quote.api.v1 import admin, email, quotes, reference
from safari_quote.core.config import get_settings
from safari_quote.core.errors import DatastoreError, ErrorCode, QuoteError
from safari_quote.core.logging import setup_logging
from safari_quote.db.pool import reset_pool
from safari_quote.notifications.client import close_email_client
from safari_quote.session.store import close_draft_session_store

logger = logging.getLogger(__name__)

_ERROR_STATUS: dict[ErrorCode, int] = {
    ErrorCode.SESSION_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.CATALOG_ENTRY_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.LINE_ITEM_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.UNKNOWN_CATEGORY: status.HTTP_400_BAD_REQUEST,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("Safari quote API starting (env=%s)", get_settings().app_env)
    try:
        yield
    finally:
        await reset_pool()
        await close_draft_session_store()
        await close_email_client()
        logger.info("Connections closed")


async def quote_error_handler(request: Request, exc: QuoteError) -> JSONResponse:
    return JSONResponse(
        status_code=_ERROR_STATUS.get(exc.code, status.HTTP_400_BAD_REQUEST),
        content={"detail": exc.message, "code": exc.code.value},
    )


async def datastore_error_handler(request: Request, exc: DatastoreError) -> JSONResponse:
    logger.error("Datastore failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "The quote database is unavailable. Please try again."},
    )


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="Safari Quote API", lifespan=lifespan)
    api_prefix = settings.api_prefix

    app.add_exception_handler(QuoteError, quote_error_handler)
    app.add_exception_handler(DatastoreError, datastore_error_handler)

    app.include_router(quotes.router, prefix=api_prefix)
    app.include_router(reference.router, prefix=api_prefix)
    app.include_router(email.router, prefix=api_prefix)
    app.include_router(admin.router, prefix=api_prefix)
    return app


app = create_app()
