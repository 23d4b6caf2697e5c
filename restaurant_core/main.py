"""
Restaurant Core - FastAPI application factory
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from restaurant_core import __version__
from restaurant_core.api.deps import enforce_route_access
from restaurant_core.audit.trail import AuditTrail
from restaurant_core.auth.passwords import PasswordPolicy
from restaurant_core.auth.rbac import AccessPolicy, role_table_for
from restaurant_core.config import Settings, get_settings
from restaurant_core.database import build_engine, build_session_factory
from restaurant_core.errors import AppError, error_payload

logger = structlog.get_logger()


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Configure structured logging"""
    settings = settings or get_settings()
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=settings.log_level.upper())
    logging.getLogger().setLevel(settings.log_level.upper())

    if settings.log_format == "console":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _bind_database(app: FastAPI, session_factory: async_sessionmaker[AsyncSession]) -> None:
    app.state.session_factory = session_factory
    app.state.audit_trail = AuditTrail(session_factory)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info("Starting Restaurant Core API", version=__version__)

    engine = None
    if getattr(app.state, "session_factory", None) is None:
        engine = build_engine(app.state.settings)
        _bind_database(app, build_session_factory(engine))

    yield

    if engine is not None:
        await engine.dispose()
    logger.info("Shutting down Restaurant Core API")


def create_app(
    settings: Optional[Settings] = None,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> FastAPI:
    """Build the API. A given session factory replaces the configured database."""
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title="Restaurant Core",
        description="Authentication, access control and audited content mutations for restaurant sites",
        version=__version__,
        lifespan=lifespan,
        dependencies=[Depends(enforce_route_access)],
    )

    app.state.settings = settings
    app.state.password_policy = PasswordPolicy(rounds=settings.bcrypt_rounds)
    app.state.access_policy = AccessPolicy(
        roles=role_table_for(settings.role_model),
        protected_prefixes=settings.protected_prefixes_list,
        default_allow=settings.route_default_allow,
    )
    if session_factory is not None:
        _bind_database(app, session_factory)

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=error_payload(exc.code.value, exc.message, exc.details),
        )

    # Health check endpoints
    @app.get("/health")
    async def health():
        """Basic health check"""
        return {"status": "healthy", "service": "api", "version": __version__}

    @app.get("/health/ready")
    async def ready(request: Request):
        """Readiness check with dependency verification"""
        checks = {}

        # Check database
        try:
            async with request.app.state.session_factory() as db:
                await db.execute(text("SELECT 1"))
            checks["database"] = "ok"
        except Exception as e:
            checks["database"] = f"failed: {str(e)}"

        checks["audit_write_failures"] = request.app.state.audit_trail.failure_count
        all_ok = checks["database"] == "ok"

        return JSONResponse(
            status_code=200 if all_ok else 503,
            content={"status": "ready" if all_ok else "not_ready", "checks": checks},
        )

    return app


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "restaurant_core.main:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_debug,
    )
