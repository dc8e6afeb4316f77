"""FastAPI main application for the community election backend."""

import time
from contextlib import asynccontextmanager

import asyncpg
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from app.api.routes import admin, auth, nominations, results, voting, zones
from app.core import database
from app.core.config import settings
from app.core.database import close_db_pool, init_db_pool
from app.core.exceptions import BallotError, ElectionError
from app.core.logging_config import get_logger, setup_logging
from app.core.responses import error_envelope, error_response_dict, success_response
from app.services.results import ResultsComposer
from app.utils.spaces import check_storage, ensure_bucket_exists

# Setup logging
setup_logging()
logger = get_logger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = (
            "default-src 'none'; frame-ancestors 'none'"
        )
        response.headers["Cache-Control"] = "no-store"

        # HSTS only in production with HTTPS
        if settings.ENVIRONMENT == "production":
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains; preload"
            )

        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager - runs on startup and shutdown."""
    logger.info("Starting election backend...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    # Initialize async database pool (skip in test environment)
    if settings.ENVIRONMENT != "test":
        await init_db_pool(settings)

        try:
            ensure_bucket_exists()
            logger.info(f"Document bucket ready: {settings.SPACES_BUCKET}")
        except (BotoCoreError, ClientError) as e:
            logger.warning(f"Could not initialize storage bucket: {e}")

    yield

    if settings.ENVIRONMENT != "test":
        await close_db_pool()
    logger.info("Shutting down election backend...")


app = FastAPI(
    title="Community Election Backend",
    description="""
    Backend for the Yuva Pankh, Karobari and Trustee elections.

    Features:
    - Voter login with one-time codes (SMS or email)
    - Zone-scoped ballots with seat limits and confirmed NOTA fill
    - Candidate nominations with document upload and admin review
    - Per-zone turnout and per-election results

    ## Authentication

    Include the JWT in the Authorization header:

    ```
    Authorization: Bearer <token>
    ```

    Voter tokens come from `/auth/voter/verify-otp`, admin tokens from
    `/auth/admin/login`.

    ## API Versioning

    - `/v1/*` - Version 1 (current stable)
    - `/*` - Latest version (may change)
    """,
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Results cache lives with the application instance
app.state.results_composer = ResultsComposer()

# Add security headers middleware FIRST (before CORS)
app.add_middleware(SecurityHeadersMiddleware)

if settings.ENVIRONMENT == "development":
    logger.info("CORS: Development mode - allowing all origins")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["*"],
    )
else:
    logger.info(f"CORS: allowed origins: {settings.cors_origins_list}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Accept", "Origin", "User-Agent"],
    )


# Exception handlers
@app.exception_handler(ElectionError)
async def election_exception_handler(request: Request, exc: ElectionError):
    """Render domain failures with their stable error code."""
    if isinstance(exc, BallotError):
        logger.warning(f"Ballot refused ({exc.code}): {exc.message} {exc.details}")
    else:
        logger.info(f"{exc.code}: {exc.message}")

    return error_response_dict(error_envelope(exc.message, exc.to_errors()), exc.status_code)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions with standardized error responses."""
    if isinstance(exc.detail, dict):
        return error_response_dict(exc.detail, exc.status_code)
    return error_response_dict(error_envelope(exc.detail), exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors."""
    errors = {}
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        errors[field] = error["msg"]

    return error_response_dict(error_envelope("Validation failed", errors), 422)


@app.exception_handler(asyncpg.exceptions.PostgresError)
async def database_exception_handler(
    request: Request, exc: asyncpg.exceptions.PostgresError
):
    """Handle database errors."""
    logger.error(f"Database error: {exc}", exc_info=True)
    return error_response_dict(error_envelope("Database error occurred"), 500)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors."""
    logger.error(f"Unexpected error: {exc}", exc_info=True)
    return error_response_dict(error_envelope("An unexpected error occurred"), 500)


ROUTERS = (
    auth.router,
    zones.router,
    voting.router,
    results.router,
    nominations.router,
    admin.router,
)

# Versioned API router
v1_router = APIRouter(prefix="/v1")
for router in ROUTERS:
    v1_router.include_router(router)
app.include_router(v1_router)

# Also include routers at root level (latest version)
for router in ROUTERS:
    app.include_router(router)


@app.get("/health")
async def health_check():
    """
    Health check for monitoring and load balancers.

    Returns 200 when the database answers, 503 otherwise. Storage problems
    are reported as degraded without failing the check.
    """
    health_status = {"status": "healthy", "timestamp": time.time(), "checks": {}}
    all_healthy = True

    health_status["checks"]["api"] = {"status": "healthy", "message": "API is running"}

    pool = database.get_pool()
    if pool is None:
        all_healthy = False
        health_status["checks"]["database"] = {
            "status": "unhealthy",
            "message": "Database pool not initialized",
        }
    else:
        try:
            async with pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            pool_size = pool.get_size()
            pool_idle = pool.get_idle_size()
            health_status["checks"]["database"] = {
                "status": "healthy",
                "message": "Database is accessible",
                "pool": {
                    "size": pool_size,
                    "max": pool.get_max_size(),
                    "idle": pool_idle,
                    "active": pool_size - pool_idle,
                },
            }
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            all_healthy = False
            health_status["checks"]["database"] = {
                "status": "unhealthy",
                "message": f"Database check failed: {e!s}",
            }

    if check_storage():
        health_status["checks"]["storage"] = {
            "status": "healthy",
            "message": "Storage is accessible",
            "bucket": settings.SPACES_BUCKET,
        }
    else:
        health_status["checks"]["storage"] = {
            "status": "degraded",
            "message": "Document storage is not reachable",
        }

    if not all_healthy:
        health_status["status"] = "unhealthy"
        return error_response_dict(
            error_envelope("Health check failed", data=health_status), 503
        )

    return success_response(data=health_status)
