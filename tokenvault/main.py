"""FastAPI application initialization."""

from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv

# Load environment variables before anything else
load_dotenv()

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tokenvault.api.auth import router as auth_router
from tokenvault.api.dependencies import NotAuthenticated
from tokenvault.api.health import router as health_router
from tokenvault.api.middleware import CorrelationIdMiddleware
from tokenvault.config import Settings, get_settings
from tokenvault.models.results import ERROR_MESSAGES, AuthError
from tokenvault.services.access_verifier import AccessVerifier
from tokenvault.services.auth_service import AuthService
from tokenvault.services.credential_store import (
    CredentialStore,
    InMemoryCredentialStore,
    PostgresCredentialStore,
)
from tokenvault.services.logging_service import configure_logging, get_logger
from tokenvault.services.password_hasher import PasswordHasher
from tokenvault.services.session_service import SessionService
from tokenvault.services.token_codec import TokenCodec


async def build_store(settings: Settings) -> CredentialStore:
    """Create the configured credential store, preparing Postgres if needed."""
    if settings.store_backend == "memory":
        return InMemoryCredentialStore()

    store = await PostgresCredentialStore.connect(settings)
    try:
        await store.migrate()
    except Exception:
        await store.close()
        raise
    return store


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application around a single settings instance."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level)
        logger = get_logger("main")

        try:
            store = await build_store(settings)
        except Exception as e:
            logger.error("store_initialization_failed", backend=settings.store_backend, error=str(e))
            raise

        hasher = PasswordHasher(settings)
        codec = TokenCodec(settings)

        app.state.settings = settings
        app.state.store = store
        app.state.auth_service = AuthService(store, hasher)
        app.state.session_service = SessionService(store, codec, settings)
        app.state.access_verifier = AccessVerifier(codec)

        logger.info(
            "application_started",
            store=settings.store_backend,
            access_lifetime_seconds=settings.access_token_lifetime_seconds,
            refresh_lifetime_seconds=settings.refresh_token_lifetime_seconds,
        )

        yield

        hasher.shutdown()
        await store.close()

        logger.info("application_shutdown")

    app = FastAPI(
        title="Token Vault",
        description="Credential and session-token lifecycle service",
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.exception_handler(NotAuthenticated)
    async def not_authenticated_handler(
        request: Request, exc: NotAuthenticated
    ) -> JSONResponse:
        return JSONResponse(
            status_code=401,
            content={"success": False, "message": exc.message},
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Log the failure in full and answer with a generic message."""
        structlog.get_logger().error(
            "unhandled_exception",
            error_type=type(exc).__name__,
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "message": ERROR_MESSAGES[AuthError.INTERNAL_ERROR],
            },
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    app.include_router(auth_router)
    app.include_router(health_router)

    return app


app = create_app()
