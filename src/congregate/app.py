from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from time import perf_counter
from uuid import uuid4

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from starlette.requests import Request
from starlette.responses import Response

import congregate.db as db
from congregate.errors import CongregateError, NotFoundError
from congregate.logging_config import (
    configure_logging,
    log_with_fields,
    reset_request_id,
    set_request_id,
)
from congregate.settings import Settings, get_settings
from congregate.web.routes import router as web_router

logger = logging.getLogger("congregate.http")

REQUEST_ID_HEADER = "X-Request-ID"


def _error_status(exc: CongregateError) -> int:
    return 404 if isinstance(exc, NotFoundError) else 400


def _install_request_logging(app: FastAPI, settings: Settings) -> None:
    def log_request(
        request: Request, level: int, event: str, started: float, **fields: object
    ) -> None:
        if not settings.log_http_requests:
            return
        log_with_fields(
            logger,
            level,
            event,
            method=request.method,
            path=request.url.path,
            duration_ms=f"{(perf_counter() - started) * 1000:.2f}",
            **fields,
        )

    @app.middleware("http")
    async def request_logging_middleware(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER, "").strip() or uuid4().hex
        token = set_request_id(request_id)
        started = perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            log_request(request, logging.ERROR, "request failed", started, exc_info=True)
            raise
        else:
            response.headers[REQUEST_ID_HEADER] = request_id
            log_request(
                request,
                logging.INFO,
                "request complete",
                started,
                status_code=response.status_code,
            )
            return response
        finally:
            reset_request_id(token)


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        if settings.auto_create_db:
            await db.create_all()
        yield

    app = FastAPI(title="congregate", lifespan=lifespan)

    @app.exception_handler(CongregateError)
    async def congregate_error_handler(request: Request, exc: CongregateError) -> JSONResponse:
        status_code = _error_status(exc)
        log_with_fields(
            logger,
            logging.INFO,
            "request rejected",
            path=request.url.path,
            status_code=status_code,
            error=type(exc).__name__,
            detail=str(exc),
        )
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    _install_request_logging(app, settings)
    app.include_router(web_router)
    return app


app = create_app()
