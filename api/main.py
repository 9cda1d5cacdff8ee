"""
FastAPI main application for the Cloud Library API.
"""

import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.auth import Authenticator, TokenManager
from api.config import APIConfig
from api.models import HealthResponse, MessageResponse
from api.routes import auth, books, users
from storage.books import BookRepository
from storage.database import DatabaseManager
from storage.exceptions import (
    ConflictError,
    FileTooLargeError,
    LibraryStorageError,
    NotFoundError,
)
from storage.files import BookFileStore
from storage.users import UserRepository
from utilities.config import StorageConfig

logger = structlog.get_logger(__name__)


def _message(status_code: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=MessageResponse(message=message).model_dump(),
        headers=headers,
    )


def _validation_message(exc: RequestValidationError) -> str:
    """Collapse pydantic validation errors into one line."""
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        parts.append(f"{location}: {error['msg']}" if location else error["msg"])
    return "; ".join(parts) or "invalid request"


def create_app(
    api_config: Optional[APIConfig] = None,
    storage_config: Optional[StorageConfig] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        api_config: HTTP, security and upload settings; loaded from the environment when omitted
        storage_config: Database and file storage settings; loaded from the environment when omitted
    """
    api_config = api_config or APIConfig()
    storage_config = storage_config or StorageConfig()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        logger.info("Starting Cloud Library API", version=api_config.api_version)

        db_manager = DatabaseManager(
            storage_config.get_database_url(),
            echo=storage_config.database_echo,
        )
        await db_manager.connect()

        file_store = BookFileStore(
            storage_config.get_books_storage_path(),
            max_file_size=api_config.max_book_file_size,
        )
        file_store.ensure_root()

        token_manager = TokenManager(
            api_config.jwt_sign_key,
            algorithm=api_config.jwt_algorithm,
            access_token_expire_minutes=api_config.access_token_expire_minutes,
        )
        user_repository = UserRepository(db_manager)

        app.state.api_config = api_config
        app.state.db_manager = db_manager
        app.state.book_repository = BookRepository(db_manager)
        app.state.user_repository = user_repository
        app.state.file_store = file_store
        app.state.token_manager = token_manager
        app.state.authenticator = Authenticator(user_repository, token_manager)

        try:
            yield
        finally:
            logger.info("Shutting down Cloud Library API")
            await db_manager.disconnect()

    app = FastAPI(
        title=api_config.api_title,
        description="""
    REST API for a small library service.

    ## Authentication

    Obtain a token from `POST /signin` and send it on every other request:

    ```
    Authorization: Bearer <token>
    ```

    Readers may browse and download books. Administrators may also upload,
    update and delete books and manage users.
    """,
        version=api_config.api_version,
        lifespan=lifespan,
    )

    @app.middleware("http")
    async def answer_options(request: Request, call_next):
        """Answer any OPTIONS request that is not a CORS preflight with a blanket allow."""
        if request.method != "OPTIONS":
            return await call_next(request)
        return Response(
            status_code=status.HTTP_200_OK,
            headers={
                "Access-Control-Allow-Origin": ", ".join(api_config.cors_origins),
                "Access-Control-Allow-Methods": ", ".join(api_config.cors_allow_methods),
                "Access-Control-Allow-Headers": ", ".join(api_config.cors_allow_headers),
            },
        )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log one line per request."""
        started = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "Request handled",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return response

    # Outermost middleware, so preflight requests are answered before anything else runs
    app.add_middleware(
        CORSMiddleware,
        allow_origins=api_config.cors_origins,
        allow_credentials=api_config.cors_allow_credentials,
        allow_methods=api_config.cors_allow_methods,
        allow_headers=api_config.cors_allow_headers,
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions."""
        return _message(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Malformed bodies are reported as bad requests."""
        return _message(status.HTTP_400_BAD_REQUEST, _validation_message(exc))

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return _message(status.HTTP_404_NOT_FOUND, exc.message)

    @app.exception_handler(ConflictError)
    async def conflict_handler(request: Request, exc: ConflictError):
        return _message(status.HTTP_409_CONFLICT, exc.message)

    @app.exception_handler(FileTooLargeError)
    async def file_too_large_handler(request: Request, exc: FileTooLargeError):
        return _message(status.HTTP_400_BAD_REQUEST, exc.message)

    @app.exception_handler(LibraryStorageError)
    async def storage_error_handler(request: Request, exc: LibraryStorageError):
        logger.error("Storage failure", error=exc.message, path=request.url.path)
        return _message(status.HTTP_500_INTERNAL_SERVER_ERROR, exc.message)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle general exceptions."""
        logger.error("Unhandled exception", error=str(exc), path=request.url.path)
        message = str(exc) if api_config.debug else "internal server error"
        return _message(status.HTTP_500_INTERNAL_SERVER_ERROR, message)

    # Health check endpoint (no authentication required)
    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check(request: Request):
        """Health check endpoint."""
        health_info = await request.app.state.db_manager.health_check()
        db_status = health_info.get("status", "unknown")

        return HealthResponse(
            status="healthy" if db_status == "healthy" else "degraded",
            timestamp=datetime.now(timezone.utc),
            version=api_config.api_version,
            database_status=db_status,
        )

    app.include_router(auth.router)
    app.include_router(books.router)
    app.include_router(users.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=8080,
        reload=True,
        log_level="info"
    )
