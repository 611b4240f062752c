"""
FastAPI application entry point.
"""

import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_admin.core.config import settings
from rbac_admin.core.exceptions import AppError
from rbac_admin.core.logging import configure_logging
from rbac_admin.models.database import close_db
from rbac_admin.api.routes import router as api_router
from rbac_admin.api.dependencies.database import get_db
from rbac_admin.api.middleware.logging import LoggingMiddleware
from rbac_admin.api.middleware.request_id import RequestIdMiddleware
from rbac_admin.utils.health import HealthChecker, HealthStatus, check_database
from rbac_admin.utils.timezone import utc_now

logger = structlog.get_logger()

STARTED_AT = time.monotonic()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan events."""
    configure_logging(settings.log_level, settings.log_format)
    logger.info(
        "app_startup",
        environment=settings.environment,
        policy_engine=settings.auth.policy_engine,
        test_auth=settings.test_auth_enabled,
    )

    yield

    await close_db()


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    # Middleware (order matters - last added is outermost)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routes
    app.include_router(api_router, prefix="/api")

    # Exception handlers
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception("unhandled_error", path=request.url.path)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": str(exc) if settings.debug else "An error occurred",
            },
        )

    # Health checks
    @app.get("/health")
    async def health_check():
        """Quick health check endpoint (for load balancers)."""
        return {
            "status": "healthy",
            "timestamp": utc_now().isoformat(),
            "uptime": round(time.monotonic() - STARTED_AT, 3),
            "environment": settings.environment,
            "version": settings.app_version,
        }

    @app.get("/health/detailed")
    async def health_check_detailed(db: AsyncSession = Depends(get_db)):
        """Health check including database connectivity."""
        checker = HealthChecker(
            version=settings.app_version,
            environment=settings.environment,
        )
        checker.add_check("database", lambda: check_database(db))

        health = await checker.run()
        status_code = 200 if health.status == HealthStatus.HEALTHY else 503
        return JSONResponse(content=health.to_dict(), status_code=status_code)

    return app


app = create_app()


def run() -> None:
    """Serve the app with uvicorn."""
    import uvicorn

    uvicorn.run(
        "rbac_admin.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        workers=settings.workers,
    )


if __name__ == "__main__":
    run()
