"""
Main entrypoint for the User Service API.

This module assembles the FastAPI application: it sets up logging,
tags every request with an id for the log lines it produces, enables
CORS, installs the exception handlers that turn service errors into
JSON responses and mounts the API router under ``/api``.
``create_app`` builds the app; an instance is created at import time
as ``app`` so it can be served directly, e.g.::

    uvicorn user_service_api.app.main:app --reload
"""

import logging
import time
import uuid
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.router import router as api_router
from .core.config import settings
from .core.errors import ApiError, InputValidationError
from .core.logging_config import request_id_var, setup_logging
from .core.store import DocumentStore, SQLiteUserStore

REQUEST_ID_HEADER = "X-Request-ID"

logger = logging.getLogger(__name__)


def create_app(store: Optional[DocumentStore] = None) -> FastAPI:
    """Create and configure a FastAPI application.

    Parameters
    ----------
    store : Optional[DocumentStore]
        Backend for the user collection.  Defaults to a
        ``SQLiteUserStore`` at ``settings.database_url``.

    Returns
    -------
    FastAPI
        A configured FastAPI application instance.
    """
    # Initialise logging before anything else so that the modules
    # below can log safely.
    setup_logging(
        settings.log_level,
        settings.log_file or None,
        max_bytes=settings.log_file_max_bytes,
        backup_count=settings.log_file_backups,
    )

    app = FastAPI(title=settings.project_name, version=settings.api_version)
    app.state.store = store if store is not None else SQLiteUserStore()

    origins = settings.allowed_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )

    app.include_router(api_router, prefix="/api")

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        # Reuse the caller's id when one is supplied so logs can be
        # correlated across services.
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
        token = request_id_var.set(request_id)
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("%s %s failed", request.method, request.url.path)
            raise
        else:
            elapsed = (time.perf_counter() - started) * 1000
            logger.info(
                "%s %s -> %s (%.1f ms)",
                request.method,
                request.url.path,
                response.status_code,
                elapsed,
            )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            request_id_var.reset(token)

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.body)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        # Malformed JSON, missing bodies and bad query or path values
        # use the same 400 shape as field validation failures.
        error = InputValidationError.from_pydantic(exc.errors())
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=error.body)

    @app.get("/", tags=["root"])
    async def read_root() -> dict:
        return {"message": f"{settings.project_name} is running", "version": settings.api_version}

    @app.on_event("startup")
    async def startup_event() -> None:
        # Create the database file and apply schema steps if needed.
        initialize = getattr(app.state.store, "initialize", None)
        if initialize is not None:
            initialize()

    return app


# Create the application instance at import time so that tools such as
# uvicorn can discover it without calling create_app manually.
app = create_app()
