"""Main FastAPI application."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from download_portal.api.deps import DBSession
from download_portal.api.v1 import api_router, download_router
from download_portal.core.config import settings
from download_portal.core.errors import (
    APIException,
    api_exception_handler,
    database_exception_handler,
    generic_exception_handler,
    http_exception_handler,
)
from download_portal.core.logging_config import configure_logging
from download_portal.core.metrics import MetricsMiddleware, get_metrics
from download_portal.core.middleware import (
    SecurityHeadersMiddleware,
    TokenRedactionMiddleware,
    install_token_redaction_logging,
)
from download_portal.core.rate_limit import limiter
from download_portal.db.session import Base, engine
from download_portal.schemas.common import HealthResponse

# Import all models so they're registered with Base.metadata
from download_portal.models import download, user  # noqa: F401

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    configure_logging()
    # Token URLs are bearer credentials; keep them out of every log line
    install_token_redaction_logging()

    logger.info(
        "Starting %s v%s (environment=%s)",
        settings.APP_NAME,
        settings.APP_VERSION,
        settings.ENVIRONMENT,
    )

    if not settings.DOWNLOADS_DIR.is_dir():
        logger.warning("Downloads directory %s does not exist", settings.DOWNLOADS_DIR)

    # Only auto-create tables outside production
    if not settings.is_production:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created/verified")
    else:
        logger.info("Production mode: skipping table auto-create")

    yield

    logger.info("Shutting down")
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="File downloads behind password login and single-use tokens",
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
    docs_url=f"{settings.API_PREFIX}/docs",
    redoc_url=None,
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Standardized error bodies
app.add_exception_handler(APIException, api_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(SQLAlchemyError, database_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

app.add_middleware(MetricsMiddleware)

# CORS middleware - restricted to the methods the API uses
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "X-Request-ID"],
    expose_headers=["X-Request-ID", "Content-Disposition"],
)

app.add_middleware(SecurityHeadersMiddleware, api_prefix=settings.API_PREFIX)

# Added last so it wraps everything: token URLs never send a Referer
app.add_middleware(TokenRedactionMiddleware)


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(db: DBSession):
    """
    Health check with real database connectivity.

    Returns 503 when the database is unreachable so load balancers can
    detect it. Error details are hidden in production.
    """
    db_status = "connected"
    overall_status = "healthy"

    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        db_status = "error" if settings.is_production else f"error: {str(e)[:50]}"
        overall_status = "unhealthy"

    response = HealthResponse(
        status=overall_status,
        version=settings.APP_VERSION,
        database=db_status,
        timestamp=datetime.now(timezone.utc),
    )

    if overall_status == "unhealthy":
        return JSONResponse(status_code=503, content=response.model_dump(mode="json"))

    return response


if settings.EXPOSE_METRICS:

    @app.get("/metrics", include_in_schema=False)
    async def metrics():
        """Prometheus scrape endpoint."""
        return get_metrics()


app.include_router(api_router, prefix=settings.API_PREFIX)
app.include_router(download_router)
