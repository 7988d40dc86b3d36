"""
Database Configuration for the Water Permit Portal
SQLAlchemy engine and session factory for the hosted record store
"""

import logging

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from permit_portal.core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


def _engine_options(database_url: str) -> dict:
    """Pool options for the configured backend"""
    if database_url.startswith("sqlite"):
        # Local/test store: one shared connection
        return {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
            "echo": settings.DEBUG,
        }
    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
        "pool_pre_ping": True,  # Verify connections before use
        "echo": settings.DEBUG,  # Log SQL queries in debug mode
    }


engine = create_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """
    Database dependency for FastAPI
    Provides a database session that automatically closes after request
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def test_database_connection():
    """Test database connection and return status (useful for health checks)"""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True, "Database connection successful"
    except Exception as e:
        logger.warning(f"Database connection failed: {e}")
        return False, f"Database connection failed: {str(e)}"


def create_tables():
    """Create all database tables"""
    from permit_portal.models.base import Base

    # Import all models to ensure they're registered with Base.metadata
    from permit_portal.models import user, application, permit, inspection, audit  # noqa: F401

    logger.info(f"Creating {len(Base.metadata.tables)} database tables")
    Base.metadata.create_all(bind=engine)


def drop_tables():
    """Drop all database tables (use with caution!)"""
    from permit_portal.models.base import Base
    from permit_portal.models import user, application, permit, inspection, audit  # noqa: F401

    Base.metadata.drop_all(bind=engine)
    logger.info("All tables dropped")
