# app/core/database.py
"""Database configuration for the report engine."""

import logging
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from app.core.config import DATABASE_URL

logger = logging.getLogger(__name__)

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


# ===== SESSION GENERATORS =====


def get_db():
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# ===== TABLE CREATION =====


def import_models():
    """Import models so they register with Base.metadata."""
    from app.entities import models as entity_models  # noqa: F401
    from app.reporting import models as reporting_models  # noqa: F401


def create_all_tables(bind=None):
    """Create all tables on the given engine (defaults to the configured one)."""
    import_models()
    Base.metadata.create_all(bind=bind or engine)
    logger.info("All tables created successfully")


def drop_all_tables(bind=None):
    """Drop all tables (use with caution!)."""
    import_models()
    Base.metadata.drop_all(bind=bind or engine)
    logger.warning("All tables dropped")


def init_db():
    """Initialize database schema on application start."""
    create_all_tables()
