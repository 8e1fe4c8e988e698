"""
Application factory: wires settings, the database, mail and the
middleware stack into a FastAPI app.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.config import Settings
from core.integrations.email import CeleryMailDispatcher, MailDispatcher
from core.middleware import (
    AuthenticationMiddleware,
    ErrorHandlingMiddleware,
    RolePolicy,
    StructuredLoggingMiddleware,
    setup_error_handlers,
    setup_logging,
)
from core.security import TokenService
from database.engine import close_db, create_engine, create_session_factory, init_db
from api.routes import health
from api.routes.v1 import applications, auth, institutions, notifications, saved_jobs

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    dispatcher: Optional[MailDispatcher] = None,
) -> FastAPI:
    """
    Build the application.

    The token service is built first so a missing ``JWT_SECRET_KEY`` raises
    ``ConfigError`` before anything else starts.

    Args:
        settings: Application settings
        session_factory: Session factory to use instead of one built from
            ``DATABASE_URL`` (the engine lifecycle is then the caller's)
        dispatcher: Mail dispatcher to use instead of the Celery one
    """
    token_service = TokenService.from_settings(settings)

    setup_logging(log_level=settings.log_level, json_logs=settings.json_logs)

    engine = None
    if session_factory is None:
        engine = create_engine(
            settings.database_url,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            echo=settings.debug,
        )
        session_factory = create_session_factory(engine)

    if dispatcher is None:
        from workers.celery_app import celery_app

        dispatcher = CeleryMailDispatcher(celery_app)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Open the engine on startup and dispose of it on shutdown."""
        logger.info(f"Starting {settings.app_name} in {settings.app_env} environment")
        if engine is not None:
            await init_db(engine)

        yield

        logger.info(f"Shutting down {settings.app_name}")
        if engine is not None:
            await close_db(engine)

    app = FastAPI(
        title=settings.app_name,
        description="Multi-institution job board: applications, roles and tenant switching",
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.token_service = token_service
    app.state.role_policy = RolePolicy.from_names(settings.global_roles)
    app.state.session_factory = session_factory
    app.state.dispatcher = dispatcher

    # Exception handlers are registered on the routed app
    setup_error_handlers(app, debug=settings.debug)

    # Middleware added last runs first.
    # 1. Authentication (innermost - verifies tokens, suspended institutions)
    app.add_middleware(
        AuthenticationMiddleware,
        token_service=token_service,
        session_factory=session_factory,
        api_prefix=settings.api_v1_prefix,
    )

    # 2. Structured logging (logs all requests/responses)
    app.add_middleware(
        StructuredLoggingMiddleware,
        log_request_body=settings.log_request_body,
        max_body_size=settings.log_max_body_size,
    )

    # 3. CORS (answers preflight before authentication)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 4. Error handling (outermost - catches all errors)
    app.add_middleware(ErrorHandlingMiddleware, debug=settings.debug)

    # Include routers
    app.include_router(health.router, tags=["health"])
    for module in (auth, applications, notifications, saved_jobs, institutions):
        app.include_router(module.router, prefix=settings.api_v1_prefix)

    @app.get("/")
    async def root():
        """Service banner."""
        return {
            "name": settings.app_name,
            "version": "0.1.0",
            "docs": "/docs" if settings.debug else None,
        }

    return app
