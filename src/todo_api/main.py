from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .errors import ApiError, error_body
from .logging_utils import configure_logging, reset_request_id, set_request_id
from .repositories import Repository, create_repository
from .routers import todos as todos_router
from .routers import users as users_router
from .seed import load_seed_users, seed_users
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {
        "name": "todos",
        "description": "Todo items with tags, assignees and notes; filtering, pagination and CSV export.",
    },
    {"name": "users", "description": "Users that own or are assigned to todos."},
]


def _internal_error_response() -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content=error_body(
            "INTERNAL_SERVER_ERROR",
            "An unexpected error occurred",
            "Please try again later",
        ),
    )


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """
        Malformed input (bad types, unknown priority, page out of range) is a
        client error reported with the standard envelope.
        """
        return JSONResponse(
            status_code=400,
            content=error_body(
                "VALIDATION_ERROR",
                "Request validation failed",
                jsonable_encoder(exc.errors()),
            ),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(f"HTTP_{exc.status_code}", str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unexpected_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _internal_error_response()


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None, repository: Optional[Repository] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Configuration; read from the environment when omitted.
        repository: Store to use instead of the one selected by settings.
            A store passed in is left open on shutdown; one created here is closed.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        repo = repository or create_repository(settings)
        if settings.users_seed_file:
            seed_users(repo, load_seed_users(settings.users_seed_file))
        app.state.repository = repo
        logger.info("Todo backend started (backend=%s)", settings.persistence_backend)
        try:
            yield
        finally:
            if repository is None:
                repo.close()
            logger.info("Todo backend stopped")

    app = FastAPI(
        title="Todo Backend",
        description="Backend API service for todos with assignees, tags, notes and CSV export.",
        version="0.1.0",
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )

    # Configure CORS based on settings (.env -> CORS_ALLOW_ORIGINS), with '*' fallback
    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        token = set_request_id(request_id)
        try:
            response = await call_next(request)
        except Exception:
            # logged here so the record still carries the request id
            logger.exception("Unhandled error on %s %s", request.method, request.url.path)
            response = _internal_error_response()
        finally:
            reset_request_id(token)
        response.headers["X-Request-ID"] = request_id
        return response

    _install_error_handlers(app)

    # PUBLIC_INTERFACE
    @app.get("/", summary="Health Check", tags=["health"])
    def health_check():
        """
        Health check endpoint.

        Returns:
            A JSON object indicating service health.
        """
        return {"message": "Healthy", "backend": settings.persistence_backend}

    app.include_router(todos_router.router)
    app.include_router(users_router.router)
    return app


app = create_app()
