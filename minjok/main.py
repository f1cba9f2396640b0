"""
Minjok Journal

FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from minjok.api.middleware.request_id import RequestIdMiddleware
from minjok.api.v1 import router as api_v1_router
from minjok.config import get_settings
from minjok.database import close_db, init_db
from minjok.kernel.errors import DomainError, StoreFailure, UnauthenticatedError
from minjok.logging_config import configure_logging, get_logger
from minjok.schemas.common import HealthResponse

settings = get_settings()
logger = get_logger(__name__)

# Form-style failures answer with {"error": ...}; auth and lookups with {"detail": ...}
_DETAIL_STATUSES = frozenset({401, 403, 404})


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan handler.

    Runs startup and shutdown tasks.
    """
    configure_logging(
        log_level=settings.log_level,
        environment=settings.environment,
        debug=settings.debug,
    )

    logger.info("Starting %s v%s", settings.project_name, settings.version)
    await init_db()
    logger.info("Database initialized")

    yield

    logger.info("Shutting down...")
    await close_db()
    logger.info("Database connections closed")


app = FastAPI(
    title=settings.project_name,
    description="""
    Minjok Journal

    Paper submission, review and publishing for a student journal.

    ## Features

    - **Papers**: Draft, review and publish papers with an immutable version ledger
    - **Comments**: One-level threads pinned to the version they were written on
    - **Catalog**: Issues bundle published papers; volumes bundle released issues
    - **Community**: Announcement board and mentor Q&A
    - **Profiles**: Roles (mentee, mentor, prof, admin) managed by admins
    """,
    version=settings.version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# add_middleware stacks innermost-first: CORS is added last so it wraps everything
app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _request_headers(request: Request) -> dict:
    req_id = getattr(request.state, "request_id", None)
    return {"X-Request-ID": req_id} if req_id else {}


@app.exception_handler(DomainError)
async def domain_exception_handler(request: Request, exc: DomainError):
    """Map the domain error taxonomy onto HTTP statuses."""
    headers = _request_headers(request)
    if isinstance(exc, UnauthenticatedError):
        headers["WWW-Authenticate"] = "Bearer"

    if isinstance(exc, StoreFailure):
        logger.error(
            "Store failure: %s",
            exc.message,
            exc_info=exc.cause,
            extra={"path": request.url.path},
        )
        content = {"error": exc.public_message, "request_id": headers.get("X-Request-ID")}
    elif exc.status_code in _DETAIL_STATUSES:
        content = {"detail": exc.message}
    else:
        content = {"error": exc.message}

    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    headers = {**(exc.headers or {}), **_request_headers(request)}
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
):
    """Handle request validation errors."""
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        errors.append({
            "field": field,
            "message": error["msg"],
            "type": error["type"],
        })
    headers = _request_headers(request)
    content = {"detail": "Validation error", "errors": errors}
    if headers:
        content["request_id"] = headers["X-Request-ID"]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=content,
        headers=headers,
    )


@app.exception_handler(Exception)
async def general_exception_handler(
    request: Request,
    exc: Exception,
):
    """Handle unexpected exceptions."""
    logger.exception("Unhandled exception: %s", exc)
    headers = _request_headers(request)
    req_id = headers.get("X-Request-ID")
    if settings.debug:
        content = {
            "detail": str(exc),
            "type": type(exc).__name__,
            "request_id": req_id,
        }
    else:
        content = {"detail": "Internal server error", "request_id": req_id}
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=content,
        headers=headers,
    )


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Check application health."""
    return HealthResponse(status="ok", version=settings.version, database="connected")


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.project_name,
        "version": settings.version,
        "docs": "/docs" if settings.debug else "disabled",
        "api": {
            "v1": settings.api_v1_prefix,
        },
    }


app.include_router(
    api_v1_router,
    prefix=settings.api_v1_prefix,
)

# Serves the public URLs handed out by LocalObjectStorage
if settings.serve_storage:
    app.mount(
        "/storage",
        StaticFiles(directory=settings.storage_root, check_dir=False),
        name="storage",
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "minjok.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
