"""
Books API — FastAPI Application Factory
========================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() wires the controller collaborators, middleware,
       exception handlers and routers, and returns the app.
Who:   uvicorn (`uvicorn books_api.main:app`) and the test suite.

Application Architecture:
    ┌───────────────────────────────────────────────────────────┐
    │                       FastAPI App                         │
    │                                                           │
    │  Middleware Chain:                                        │
    │  ┌──────────────┐ ┌──────────┐ ┌─────────┐ ┌───────────┐  │
    │  │  Rate Limit  │→│  Req ID  │→│ Logging │→│ GZip/CORS │  │
    │  └──────────────┘ └──────────┘ └─────────┘ └───────────┘  │
    │                                                           │
    │  Routes:                                                  │
    │  ┌──────────────────────────────┐ ┌─────────────────┐     │
    │  │ /hussainas/v1/books[/{id}]   │ │ GET /health     │     │
    │  └──────────────────────────────┘ └─────────────────┘     │
    │                                                           │
    │  app.state:                                               │
    │    entity_registry  → EntityRegistry (hussainas_book)     │
    │    book_controller  → BookController                      │
    └───────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:   configure logging, validate configuration (warn only)
    Shutdown:  dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from books_api import __app_name__, __version__
from books_api.config import Settings, settings as default_settings
from books_api.database import dispose_engine
from books_api.exceptions import BooksAPIError
from books_api.middleware.logging import RequestLoggingMiddleware
from books_api.middleware.rate_limit import RateLimitMiddleware
from books_api.middleware.request_id import RequestIDMiddleware, request_id_var
from books_api.routes import books, health
from books_api.schemas.book import ErrorResponse
from books_api.services.authorization import RoleAuthorizer
from books_api.services.book_controller import BookController
from books_api.services.content import ContentRenderer
from books_api.services.entity_store import EntityStore
from books_api.services.registry import EntityRegistry, register_book_type

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: Optional[str] = None) -> None:
    """
    Configures the root logger once for the whole process.

    Format: 2024-01-15T12:00:00 [INFO] books_api.services.book_controller: ...
    """
    logging.basicConfig(
        level=getattr(logging, level or default_settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party loggers are noisy at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    app_settings: Settings = app.state.settings

    setup_logging(app_settings.log_level)
    logger.info("=" * 60)
    logger.info("%s %s starting up...", __app_name__, __version__)

    try:
        app_settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving: anonymous reads and /health still work
        logger.warning("Configuration warning: %s", str(e))

    logger.info("Entity types: %s", ", ".join(app.state.entity_registry.registered_names()))
    logger.info("Books route: %s", app_settings.rest_url(app.state.book_controller.base_route))
    logger.info("=" * 60)

    yield

    logger.info("%s shutting down...", __app_name__)
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def error_response(
    status_code: int,
    code: str,
    message: str,
    data: Optional[dict] = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    body = ErrorResponse(
        code=code,
        message=message,
        data={"status": status_code, **(data or {})},
        request_id=request_id_var.get("") or None,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Maps exceptions onto the JSON error body.

    Handler hierarchy:
        BooksAPIError           → exc.status_code (400 / 403 / 404 / 500)
        RequestValidationError  → 400 rest_invalid_param
        HTTPException (routing) → 404 rest_no_route, 405 ...
        Exception (fallback)    → 500 internal_server_error

    500 bodies from OperationError carry the operation's message but never a
    stack trace; unexpected exceptions get a generic message.
    """

    @app.exception_handler(BooksAPIError)
    async def handle_books_api_error(request: Request, exc: BooksAPIError):
        rid = request_id_var.get("")
        if exc.status_code >= 500:
            logger.error("[%s] %s: %s | Context: %s", rid, exc.code, exc.message, exc.context)
            # Database internals stay in the log
            data = {k: v for k, v in exc.context.items() if k != "error_type"}
        else:
            logger.info("[%s] %s: %s", rid, exc.code, exc.message)
            data = exc.context
        return error_response(exc.status_code, exc.code, exc.message, data)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        invalid = {
            str(error["loc"][-1]): error["msg"]
            for error in exc.errors()
            if error.get("loc")
        }
        return error_response(
            400,
            "rest_invalid_param",
            f"Invalid parameter(s): {', '.join(invalid) or 'body'}",
            {"params": invalid},
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return error_response(
                404, "rest_no_route", "No route was found matching the URL and request method."
            )
        return error_response(
            exc.status_code, "rest_http_error", str(exc.detail), headers=exc.headers
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(
            "[%s] Unexpected error: %s", request_id_var.get(""), str(exc), exc_info=True,
        )
        return error_response(
            500, "internal_server_error", "An unexpected error occurred. Please try again later."
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def build_book_controller(app_settings: Settings, registry: EntityRegistry) -> BookController:
    """Controller with the default collaborators."""
    return BookController(
        settings=app_settings,
        registry=registry,
        store=EntityStore(registry),
        authorizer=RoleAuthorizer(),
        renderer=ContentRenderer(),
    )


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """
    Creates a fully wired application.

    The entity registry is built here (registering the Book type before
    any route can be served) and shared through `app.state`.
    """
    app_settings = app_settings or default_settings

    app = FastAPI(
        title=__app_name__,
        description="REST resource controller for Book entities.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    registry = EntityRegistry()
    register_book_type(registry)
    app.state.settings = app_settings
    app.state.entity_registry = registry
    app.state.book_controller = build_book_controller(app_settings, registry)

    # ── Middleware (executes in reverse order of addition) ───────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            "X-Request-ID",
            "X-WP-Total",
            "X-WP-TotalPages",
            "Link",
            "Location",
            "Retry-After",
        ],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware, settings=app_settings)

    register_exception_handlers(app)

    app.include_router(books.router, prefix=f"/{app_settings.api_namespace}")
    app.include_router(health.router)

    return app


app = create_app()
