### Description ###
# VetPractice Core - Multi-Tenant Veterinary Practice Backend
# - API Server -
# Author: Bailey Dixon
# Date: 10/18/2026
# Python: 3.11
####################

"""
VetPractice Core API - Main Application

FastAPI application entry point that provides:
- Tenant resolution by subdomain, custom domain or owner header
- Per-tenant pooled connections
- Session authentication and role based permissions
- Owner portal for tenant provisioning
- Request logging and attribution
- OpenAPI documentation at /api/docs

Usage:
    # Development
    uvicorn vetcore.main:app --reload --port 8000

    # Production
    uvicorn vetcore.main:app --host 0.0.0.0 --port 8000
"""

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from vetcore.config import get_app_config, get_settings
from vetcore.database import SessionLocal, engine, init_owner_db
from vetcore.errors import register_exception_handlers
from vetcore.middleware import RequestLoggingMiddleware
from vetcore.middleware.rate_limit import limiter, rate_limit_exceeded_handler
from vetcore.routers import (
    auth_router,
    billing_router,
    categories_router,
    overrides_router,
    owner_router,
    roles_router,
)
from vetcore.schemas.responses import HealthResponse
from vetcore.services.connection_manager import get_connection_manager, get_default_connection
from vetcore.services.notifier import get_notifier
from vetcore.services.provisioning import bootstrap_owner, prepare_tenant_database
from vetcore.utils import setup_logger

# Load settings
settings = get_settings()

logger = setup_logger("vetcore_api", log_to_console=False)


def _check_pending_migrations():
    """
    Check for pending Alembic migrations of the owner database on startup.

    Logs a warning if the schema is not up to date; never blocks startup.
    """
    from alembic.config import Config
    from alembic.runtime.migration import MigrationContext
    from alembic.script import ScriptDirectory

    from vetcore.config import get_project_root

    ini_path = get_project_root() / "alembic.ini"
    if not ini_path.exists():
        return

    try:
        alembic_cfg = Config(str(ini_path))
        alembic_cfg.set_main_option("script_location", str(get_project_root() / "migrations"))
        script = ScriptDirectory.from_config(alembic_cfg)

        with engine.connect() as conn:
            context = MigrationContext.configure(conn)
            current_rev = context.get_current_revision()

        head_rev = script.get_current_head()
    except Exception as e:
        logger.warning(f"Could not check migrations: {e}")
        return

    if current_rev is None:
        logger.warning("Owner database is not stamped by Alembic; run 'alembic stamp head' for existing databases")
    elif current_rev != head_rev:
        logger.warning(f"Pending owner database migrations: {current_rev} -> {head_rev} (run 'alembic upgrade head')")
    else:
        logger.info(f"Owner database schema is up to date (revision: {current_rev})")


def _bootstrap_owner_user():
    """Create the first owner account from config.yaml if none exists"""
    db = SessionLocal()
    try:
        bootstrap_owner(db, get_app_config().owner)
    finally:
        db.close()


def _prepare_default_database() -> bool:
    """Make sure the default (tenant-less) database carries the tenant schema"""
    try:
        prepare_tenant_database(get_default_connection().engine)
        return True
    except SQLAlchemyError as e:
        logger.warning(f"Default database unavailable at startup: {e!s}")
        return False


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager

    Handles startup and shutdown events:
    - Startup: owner database tables, bootstrap owner, default database
    - Shutdown: close tenant connections, flush notifications
    """
    # Startup
    print(f"Starting {settings.api_title} v{settings.api_version}")
    print(f"API documentation available at: http://localhost:{settings.port}/api/docs")

    init_owner_db()
    app.state.owner_db_connected = True

    _check_pending_migrations()
    _bootstrap_owner_user()
    app.state.default_db_ready = _prepare_default_database()

    yield

    # Shutdown
    print("Shutting down VetPractice Core API...")
    get_connection_manager().close_all()
    await get_notifier().drain()


# Create FastAPI application
app = FastAPI(
    title=settings.api_title,
    version=settings.api_version,
    description="""
## VetPractice Core API

Multi-tenant backend core for veterinary practices.

### Features
- **Tenancy**: Each practice group is served from its own database, selected by subdomain
- **Permissions**: Static and custom roles, per-user overrides, permission categories
- **Owner Portal**: Tenant provisioning, deactivation and connection diagnostics
- **Logging**: Full request attribution and audit trail

### Authentication
Practice users log in at `/api/v1/auth/login` and receive a `session_id` cookie.
Owner portal endpoints take a bearer token from `/api/v1/owner/login`.
    """,
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)

# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# Error taxonomy and the catch-all 500 handler
register_exception_handlers(app, debug=settings.debug)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=r"https?://.*",  # Tenants live on their own subdomains
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add request logging middleware
app.add_middleware(RequestLoggingMiddleware)


def _ping_owner_db() -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        return False


def _ping_default_db() -> bool:
    try:
        get_default_connection().ping()
        return True
    except SQLAlchemyError:
        return False


# Health check endpoint
@app.get(
    "/health",
    tags=["System"],
    summary="Health check",
    description="Check API health and connectivity status",
    response_model=HealthResponse,
)
async def health_check() -> HealthResponse:
    """
    Health check endpoint

    Returns:
    - API version
    - Owner database connectivity
    - Default database connectivity
    - Number of live tenant connections
    """
    owner_ok, default_ok = await asyncio.gather(
        asyncio.to_thread(_ping_owner_db),
        asyncio.to_thread(_ping_default_db),
    )
    return HealthResponse(
        status="healthy" if owner_ok and default_ok else "degraded",
        version=settings.api_version,
        owner_db_connected=owner_ok,
        default_db_connected=default_ok,
        active_tenant_connections=len(get_connection_manager().active_connections()),
    )


# Root endpoint
@app.get("/", tags=["System"], summary="API Info")
async def root():
    """API root - returns basic API information"""
    return {
        "name": settings.api_title,
        "version": settings.api_version,
        "docs": "/api/docs",
        "health": "/health",
    }


# Include routers
app.include_router(
    owner_router,
    prefix=f"{settings.api_prefix}/owner",
    tags=["Owner Portal"],
)

app.include_router(
    auth_router,
    prefix=f"{settings.api_prefix}/auth",
    tags=["Auth"],
)

app.include_router(
    roles_router,
    prefix=f"{settings.api_prefix}/roles",
    tags=["RBAC - Roles"],
)

app.include_router(
    overrides_router,
    prefix=f"{settings.api_prefix}/overrides",
    tags=["RBAC - Overrides"],
)

app.include_router(
    categories_router,
    prefix=f"{settings.api_prefix}/permission-categories",
    tags=["RBAC - Permission Categories"],
)

app.include_router(
    billing_router,
    prefix=f"{settings.api_prefix}/billing",
    tags=["Billing"],
)


# Entry point for running directly
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "vetcore.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
