"""
FastAPI application entry point.
Configures middleware, routers, and lifecycle events.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from sqlalchemy import text

from agritrust.core.config import get_settings
from agritrust.core.dependencies import get_runtime, seed_demo_ledger
from agritrust.core.logging import configure_logging, get_logger
from agritrust.core.middleware import RequestContextMiddleware, SecurityHeadersMiddleware
from agritrust.db.session import close_db, init_db, session_scope
from agritrust.modules.batches.router import router as batches_router
from agritrust.modules.claims.public_router import router as public_claims_router
from agritrust.modules.credentials.public_router import router as public_credentials_router
from agritrust.modules.farmers.router import router as farmers_router
from agritrust.modules.feedback.router import router as feedback_router
from agritrust.modules.transparency.public_router import router as public_transparency_router

# Configure logging before anything else
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Opens the database engine when the database storage backend is selected
    and disposes of it on shutdown. Seeds the demonstration ledger when
    ``seed_demo_data`` is set.
    """
    settings = get_settings()
    logger.info(
        "starting_application",
        environment=settings.environment,
        version=settings.version,
        storage_backend=settings.storage_backend,
    )

    if settings.storage_backend == "database":
        await init_db()
        logger.info("database_initialized")

    if settings.seed_demo_data:
        await seed_demo_ledger(get_runtime())

    yield

    if settings.storage_backend == "database":
        await close_db()
    logger.info("application_shutdown_complete")


def create_application() -> FastAPI:
    """
    Application factory function.

    Creates and configures the FastAPI application with all middleware,
    routers, and settings applied.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.project_name,
        version=settings.version,
        openapi_url=f"{settings.api_v1_prefix}/openapi.json",
        docs_url=f"{settings.api_v1_prefix}/docs",
        redoc_url=f"{settings.api_v1_prefix}/redoc",
        lifespan=lifespan,
    )

    # ==========================================================================
    # Middleware Configuration
    # ==========================================================================

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Accept", "Origin", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    # ==========================================================================
    # Router Registration
    # ==========================================================================

    @app.get("/health", tags=["Health"])
    async def health_check() -> dict[str, object]:
        checks: dict[str, str] = {"storage": settings.storage_backend}

        if settings.storage_backend == "database":
            try:
                async with session_scope() as session:
                    await session.execute(text("SELECT 1"))
                checks["db"] = "ok"
            except Exception:
                logger.warning("health_db_probe_failed", exc_info=True)
                checks["db"] = "unavailable"

        overall = "degraded" if checks.get("db") == "unavailable" else "healthy"
        return {"status": overall, "version": settings.version, "checks": checks}

    # Public API (consumers, no authentication)
    app.include_router(
        public_claims_router,
        prefix=f"{settings.api_v1_prefix}/public",
        tags=["Public Claims"],
    )
    app.include_router(
        public_transparency_router,
        prefix=f"{settings.api_v1_prefix}/public",
        tags=["Public Transparency Log"],
    )
    app.include_router(
        public_credentials_router,
        prefix=f"{settings.api_v1_prefix}/public",
        tags=["Public Credentials"],
    )

    # Farmer API (identity comes from the upstream session layer)
    app.include_router(
        farmers_router,
        prefix=f"{settings.api_v1_prefix}/farmers",
        tags=["Farmers"],
    )
    app.include_router(
        batches_router,
        prefix=f"{settings.api_v1_prefix}/farmers",
        tags=["Batches"],
    )
    app.include_router(
        feedback_router,
        prefix=f"{settings.api_v1_prefix}/feedback",
        tags=["Feedback"],
    )

    return app


# Create the application instance
app = create_application()
