### Description ###
# VetPractice Core - Multi-Tenant Veterinary Practice Backend
# - Database Setup -
# Author: Bailey Dixon
# Date: 10/18/2026
# Python: 3.11
####################

"""
Database Setup

Two independent declarative bases:
- OwnerBase: the owner/platform database (tenant registry, owner users,
  owner sessions, access logs). One engine per process.
- TenantBase: the schema every tenant database carries (practices, users,
  sessions, roles, overrides, invoices). Engines are opened per tenant by
  the connection manager.

Uses synchronous SQLAlchemy (no greenlet dependency).
"""

from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from vetcore.config import get_settings

settings = get_settings()

# Default SQLite files live under data/
DATA_DIR = Path(__file__).parent.parent / "data"
DATA_DIR.mkdir(exist_ok=True)

OWNER_DATABASE_URL = settings.owner_database_url


def engine_options(url: str) -> dict:
    """Driver-specific engine arguments"""
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


# Create owner engine (synchronous)
engine = create_engine(OWNER_DATABASE_URL, echo=False, **engine_options(OWNER_DATABASE_URL))

# Owner session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base classes for models
OwnerBase = declarative_base()
TenantBase = declarative_base()


def get_owner_db():
    """
    Dependency that provides an owner database session.

    Usage:
        @app.get("/endpoint")
        def endpoint(db: Session = Depends(get_owner_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_owner_db():
    """
    Initialize the owner database - create all tables.

    Call this on application startup.
    """
    # Import models to register them with OwnerBase
    from vetcore.models import access_log, owner  # noqa: F401

    OwnerBase.metadata.create_all(bind=engine)


def create_tenant_schema(tenant_engine: Engine) -> None:
    """Create the tenant tables on a freshly provisioned tenant database"""
    from vetcore.models import billing, practice, rbac  # noqa: F401

    TenantBase.metadata.create_all(bind=tenant_engine)
